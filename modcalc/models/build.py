from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from modcalc.models.prediction import PredictionResult


class BuildCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    car_id: str = Field(..., alias="carId", min_length=1)
    mod_ids: list[str] = Field(default_factory=list, alias="modIds", max_length=100)
    result: PredictionResult


class SavedBuild(BaseModel):
    id: str
    created_at: Optional[str] = None
    car_id: str
    mod_ids: list[str] = []
    result: dict[str, Any] = {}
