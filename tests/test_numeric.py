from decimal import Decimal
from fractions import Fraction

import pytest

from app.core.errors import ValidationError
from app.core.numeric import normalize_decimals, require_finite, to_number


def _leaves(value):
    if isinstance(value, dict):
        for v in value.values():
            yield from _leaves(v)
    elif isinstance(value, (list, tuple)):
        for v in value:
            yield from _leaves(v)
    else:
        yield value


def test_normalize_replaces_decimal_leaves_recursively():
    raw = {
        "total": Decimal("42.00"),
        "lines": [{"unit_price": Decimal("10.50"), "quantity": 3}, {"unit_price": Decimal("5.25"), "quantity": 2}],
        "meta": {"ratio": Fraction(1, 4), "label": "po", "missing": None, "flag": True},
    }
    out = normalize_decimals(raw)

    assert out["total"] == 42.0 and isinstance(out["total"], float)
    assert out["lines"][0] == {"unit_price": 10.5, "quantity": 3}
    assert out["meta"] == {"ratio": 0.25, "label": "po", "missing": None, "flag": True}
    assert not any(isinstance(leaf, (Decimal, Fraction)) for leaf in _leaves(out))


def test_normalize_is_idempotent():
    raw = {"a": [Decimal("1.1"), (Decimal("2.2"), "x")], "b": {"c": Decimal("0")}}
    once = normalize_decimals(raw)
    assert normalize_decimals(once) == once


def test_normalize_does_not_mutate_input():
    raw = {"a": Decimal("1.5")}
    normalize_decimals(raw)
    assert isinstance(raw["a"], Decimal)


def test_to_number_leaves_ints_and_strings_alone():
    assert to_number(7) == 7 and isinstance(to_number(7), int)
    assert to_number("7.5") == "7.5"
    assert to_number(None) is None


@pytest.mark.parametrize("bad", [-1, float("nan"), float("inf"), "ten"])
def test_require_finite_rejects_bad_quantities(bad):
    with pytest.raises(ValidationError):
        require_finite(bad, "required_quantity")


def test_require_finite_accepts_decimal():
    assert require_finite(Decimal("2.5"), "q") == 2.5
