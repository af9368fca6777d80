from typing import Any, Optional

from pydantic import BaseModel, field_validator, model_validator

from modcalc.core.enums import SpecSource
from modcalc.utils.converters import optional_float


class Vehicle(BaseModel):
    """A row from the ``cars`` table. Every figure may be null."""

    id: str
    make: str = ""
    model: str = ""
    year: Optional[int] = None
    trim: Optional[str] = None
    body_style: Optional[str] = None
    drivetrain: Optional[str] = None

    curb_weight_lbs: Optional[float] = None
    stock_hp: Optional[float] = None
    stock_tq: Optional[float] = None
    zero_to_sixty_s: Optional[float] = None
    quarter_mile_s: Optional[float] = None

    @model_validator(mode="before")
    @classmethod
    def coerce_row(cls, data: Any) -> Any:
        """Accept raw Supabase rows: numeric ids, blank strings, NaN."""
        if isinstance(data, dict):
            data = dict(data)
            if data.get("id") is not None:
                data["id"] = str(data["id"])
            for key in (
                "curb_weight_lbs",
                "stock_hp",
                "stock_tq",
                "zero_to_sixty_s",
                "quarter_mile_s",
            ):
                if key in data:
                    data[key] = optional_float(data[key])
            for key in ("make", "model"):
                if data.get(key) is None:
                    data[key] = ""
        return data

    @field_validator("curb_weight_lbs", "stock_hp", "stock_tq", "zero_to_sixty_s", "quarter_mile_s")
    @classmethod
    def non_positive_is_missing(cls, v: Optional[float]) -> Optional[float]:
        # A zero weight or zero time is a placeholder, not a measurement
        if v is not None and v <= 0:
            return None
        return v

    @property
    def display_name(self) -> str:
        parts = [str(self.year) if self.year else "", self.make, self.model, self.trim or ""]
        return " ".join(p for p in parts if p)


class CarSpecs(BaseModel):
    """Stock figures for a picker selection (year/make/model/trim_label)."""

    stock_hp_bhp: Optional[float] = None
    stock_tq_lbft: Optional[float] = None
    curb_weight_lb: Optional[float] = None
    zero_to_sixty_s_stock: Optional[float] = None
    quarter_mile_s_stock: Optional[float] = None
    source: SpecSource = SpecSource.MISSING

    @property
    def is_complete(self) -> bool:
        return bool(self.stock_hp_bhp and self.stock_tq_lbft and self.curb_weight_lb)
