"""Payload field parsing shared by the services."""

import pytest

from cutroom.core.exceptions import ValidationError
from cutroom.utils.helpers import text_field


@pytest.mark.parametrize("data, expected", [
    ({"text": "  Trim the intro  "}, "Trim the intro"),
    ({"text": "   "}, None),
    ({"text": None}, None),
    ({}, None),
])
def test_text_field_values(data, expected):
    assert text_field(data, "text") == expected


@pytest.mark.parametrize("value", [5, 1.5, True, ["a"], {"a": 1}])
def test_text_field_rejects_non_strings(value):
    with pytest.raises(ValidationError) as exc:
        text_field({"text": value}, "text")
    assert exc.value.details == {"text": value}
