"""Tests for nullable-value converters and row coercion."""

import math

from modcalc.models.modification import Modification
from modcalc.models.vehicle import Vehicle
from modcalc.utils.converters import optional_float, safe_bool, safe_float


class TestConverters:
    def test_safe_float(self):
        assert safe_float("3.5") == 3.5
        assert safe_float(None) == 0.0
        assert safe_float("") == 0.0
        assert safe_float(math.nan) == 0.0
        assert safe_float("abc", default=-1.0) == -1.0

    def test_optional_float(self):
        assert optional_float("12") == 12.0
        assert optional_float(0) == 0.0
        assert optional_float(None) is None
        assert optional_float(math.nan) is None
        assert optional_float("n/a") is None

    def test_safe_bool(self):
        assert safe_bool("TRUE") is True
        assert safe_bool("yes") is True
        assert safe_bool(1) is True
        assert safe_bool("false") is False
        assert safe_bool(None) is False


class TestRowCoercion:
    def test_vehicle_from_raw_row(self):
        car = Vehicle(
            **{
                "id": 42,
                "make": None,
                "model": "Civic",
                "stock_hp": "158",
                "curb_weight_lbs": math.nan,
                "zero_to_sixty_s": -1,
            }
        )
        assert car.id == "42"
        assert car.make == ""
        assert car.stock_hp == 158.0
        assert car.curb_weight_lbs is None
        assert car.zero_to_sixty_s is None
        assert car.display_name == "Civic"

    def test_modification_from_raw_row(self):
        mod = Modification(
            **{
                "id": 3,
                "slug": "downpipe",
                "name": "",
                "category": None,
                "avg_hp_gain": "15",
                "avg_tq_gain": None,
                "needs_tune": "t",
            }
        )
        assert mod.id == "3"
        assert mod.name == "downpipe"
        assert mod.category == "other"
        assert mod.avg_hp_gain == 15.0
        assert mod.avg_tq_gain == 0.0
        assert mod.needs_tune is True
        assert mod.is_gain_producing
