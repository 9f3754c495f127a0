from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, model_validator


class PatchModel(BaseModel):
    """Partial-update body.

    Omitted fields are left alone. An explicit ``null`` is only accepted for
    the fields listed in ``nullable``; every other column is NOT NULL.
    """

    nullable: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def reject_explicit_nulls(self):
        bad = sorted(
            name for name in self.model_fields_set
            if getattr(self, name) is None and name not in self.nullable
        )
        if bad:
            raise ValueError(f"{', '.join(bad)} may not be null")
        return self
