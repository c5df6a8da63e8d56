"""
Test suite for http_base utils.

Tests cover:
- Pattern extraction and its errors
- Characteristic lookup
- Numeric conversion
"""

import re
import pytest
from http_base.utils import extract_value_from_pattern, get_characteristic, to_number, PatternError


class TestExtractValueFromPattern:
    """Tests for extract_value_from_pattern."""

    def test_default_pattern(self):
        assert extract_value_from_pattern(re.compile(r"([0-9]{1,3})"), "value 742", 1) == "742"

    def test_string_pattern(self):
        assert extract_value_from_pattern(r"ppm=(\d+)", '{"ppm=1234"}', 1) == "1234"

    def test_json_body(self):
        body = '{"temperature": 21.5, "co2": 980}'
        assert extract_value_from_pattern(r'"co2":\s*(\d+)', body, 1) == "980"

    def test_second_group(self):
        assert extract_value_from_pattern(r"(\w+)=(\d+)", "co=45", 2) == "45"

    def test_group_zero(self):
        assert extract_value_from_pattern(r"\d+", "abc 12", 0) == "12"

    def test_no_match(self):
        with pytest.raises(PatternError, match="didn't match"):
            extract_value_from_pattern(r"(\d+)", "offline", 1)

    def test_group_out_of_range(self):
        with pytest.raises(PatternError, match="out of range"):
            extract_value_from_pattern(r"(\d+)", "12", 3)

    def test_group_not_participating(self):
        with pytest.raises(PatternError):
            extract_value_from_pattern(r"(a)?(\d+)", "12", 1)

    def test_none_body(self):
        with pytest.raises(PatternError):
            extract_value_from_pattern(r"(\d+)", None, 1)


class TestGetCharacteristic:
    """Tests for get_characteristic."""

    class Sensor:
        characteristics = {"CarbonDioxideLevel": "CO2LVL"}

    def test_known(self):
        assert get_characteristic(self.Sensor(), "CarbonDioxideLevel") == "CO2LVL"

    def test_unknown(self):
        assert get_characteristic(self.Sensor(), "CurrentTemperature") is None

    def test_empty_name(self):
        assert get_characteristic(self.Sensor(), None) is None
        assert get_characteristic(self.Sensor(), "") is None

    def test_node_without_characteristics(self):
        assert get_characteristic(object(), "CarbonDioxideLevel") is None


class TestToNumber:
    """Tests for to_number."""

    def test_integer_string(self):
        assert to_number("612") == 612
        assert isinstance(to_number("612"), int)

    def test_float_string(self):
        assert to_number("612.5") == 612.5

    def test_integral_float(self):
        assert to_number(400.0) == 400
        assert isinstance(to_number(400.0), int)

    def test_int_passthrough(self):
        assert to_number(7) == 7

    def test_whitespace(self):
        assert to_number(" 450 \n") == 450

    def test_invalid(self):
        with pytest.raises(ValueError):
            to_number("high")

    @pytest.mark.parametrize("value", ["inf", "-inf", "nan", "NaN", float("inf")])
    def test_non_finite_rejected(self, value):
        with pytest.raises(ValueError):
            to_number(value)

    def test_bool_rejected(self):
        with pytest.raises(ValueError):
            to_number(True)
