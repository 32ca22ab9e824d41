from typing import Any

from pydantic import AliasChoices, BaseModel, Field

_threshold_alias = AliasChoices("match_threshold", "threshold")


class PairCreate(BaseModel):
    image_asset_id: str = Field(min_length=1)
    video_asset_id: str = Field(min_length=1)
    image_fingerprint: Any | None = None
    threshold: float = Field(default=0.8, ge=0, le=1, validation_alias=_threshold_alias)
    priority: int = 0
    is_active: bool = True


class PairUpdate(BaseModel):
    image_asset_id: str | None = None
    video_asset_id: str | None = None
    image_fingerprint: Any | None = None
    threshold: float | None = Field(default=None, ge=0, le=1, validation_alias=_threshold_alias)
    priority: int | None = None
    is_active: bool | None = None
    experience_id: str | None = None
