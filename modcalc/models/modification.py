from typing import Any, Optional

from pydantic import BaseModel, model_validator

from modcalc.utils.converters import safe_bool, safe_float


class Modification(BaseModel):
    """A row from the ``mods`` table. Null gains and deltas count as zero."""

    id: str
    slug: str = ""
    name: str = "Modification"
    category: str = "other"
    avg_hp_gain: float = 0.0
    avg_tq_gain: float = 0.0
    avg_weight_delta_lbs: float = 0.0
    needs_tune: bool = False
    notes: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def coerce_row(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            if data.get("id") is not None:
                data["id"] = str(data["id"])
            for key in ("avg_hp_gain", "avg_tq_gain", "avg_weight_delta_lbs"):
                data[key] = safe_float(data.get(key))
            data["needs_tune"] = safe_bool(data.get("needs_tune"))
            if not data.get("name"):
                data["name"] = data.get("slug") or "Modification"
            if not data.get("category"):
                data["category"] = "other"
            if data.get("slug") is None:
                data["slug"] = ""
        return data

    @property
    def is_gain_producing(self) -> bool:
        return self.avg_hp_gain > 0 or self.avg_tq_gain > 0
