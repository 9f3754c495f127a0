from __future__ import annotations

import re
from datetime import datetime

from sqlalchemy.orm import Session


def next_yearly_number(db: Session, model, field: str, prefix: str, width: int = 4, year: int | None = None) -> str:
    """Next number in a PREFIX-YYYY-#### series, e.g. PO-2026-0001.

    Continues after the highest existing number for the year; numbers that
    don't match the pattern are ignored.
    """
    y = year or datetime.now().year
    col = getattr(model, field)
    base = f"{prefix}-{y}-"
    pat = re.compile(rf"^{re.escape(base)}(\d+)$")
    max_n = 0
    for (code,) in db.query(col).filter(col.like(f"{base}%")).all():
        m = pat.match(code or "")
        if m:
            max_n = max(max_n, int(m.group(1)))
    return f"{base}{str(max_n + 1).zfill(width)}"
