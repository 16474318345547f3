from __future__ import annotations

import pytest

from eduflex.common.validators import optional_amount
from eduflex.core.exceptions import ValidationError


def test_optional_amount_parses_numbers_and_blanks():
    assert optional_amount(None) is None
    assert optional_amount("") is None
    assert optional_amount("1500") == 1500.0
    assert optional_amount(0) == 0.0


@pytest.mark.parametrize("value", ["abc", True, -5, "nan", "inf", "-inf", float("nan")])
def test_optional_amount_rejects_invalid_values(value):
    with pytest.raises(ValidationError):
        optional_amount(value)
