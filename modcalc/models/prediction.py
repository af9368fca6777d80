from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PredictRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    car_id: str = Field(..., alias="carId", min_length=1)
    mod_ids: list[str] = Field(default_factory=list, alias="modIds", max_length=100)


class PredictionResult(BaseModel):
    """Estimated performance after modifications.

    Serialized with camelCase keys for the browser client.
    """

    model_config = ConfigDict(populate_by_name=True)

    estimated_hp: int = Field(..., alias="estimatedHp")
    estimated_tq: int = Field(..., alias="estimatedTq")
    estimated_weight: int = Field(..., alias="estimatedWeight")
    power_to_weight: float = Field(..., alias="powerToWeight")  # hp per lb
    zero_to_sixty: Optional[float] = Field(default=None, alias="zeroToSixty")
    quarter_mile: Optional[float] = Field(default=None, alias="quarterMile")
    notes: list[str] = Field(default_factory=list)

    def with_notes(self, extra: list[str]) -> "PredictionResult":
        """Return a copy with ``extra`` appended to the notes."""
        return self.model_copy(update={"notes": [*self.notes, *extra]})
