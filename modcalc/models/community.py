from typing import Optional

from pydantic import BaseModel, Field, field_validator


class SpecSubmission(BaseModel):
    """Community-submitted stock figures for a trim, pending review."""

    year: int = Field(..., ge=1900, le=2100)
    make: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    trim_label: str = Field(..., min_length=1, max_length=200)

    stock_hp_bhp: int = Field(..., gt=0, le=5000)
    stock_tq_lbft: int = Field(..., gt=0, le=5000)
    curb_weight_lb: int = Field(..., gt=0, le=20000)
    zero_to_sixty_s_stock: Optional[float] = Field(default=None, gt=0, le=60)
    quarter_mile_s_stock: Optional[float] = Field(default=None, gt=0, le=60)

    source_url: Optional[str] = Field(default=None, max_length=2000)
    notes: Optional[str] = Field(default=None, max_length=5000)
    submitted_email: Optional[str] = Field(default=None, max_length=320)

    @field_validator("source_url", "notes", "submitted_email", mode="before")
    @classmethod
    def blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("source_url")
    @classmethod
    def http_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.lower().startswith(("http://", "https://")):
            raise ValueError("source_url must be an http(s) URL")
        return v

    @field_validator("submitted_email")
    @classmethod
    def looks_like_email(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and ("@" not in v or v.startswith("@") or v.endswith("@")):
            raise ValueError("submitted_email is not a valid address")
        return v


class SubmissionReceipt(BaseModel):
    status: str = "pending"
    id: Optional[str] = None
