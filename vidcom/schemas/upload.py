from typing import Literal

from pydantic import AliasChoices, BaseModel, Field

AssetKind = Literal["image", "video", "mind"]


class SignUploadRequest(BaseModel):
    kind: AssetKind
    mime: str = Field(min_length=1)
    filename: str = Field(min_length=1)
    size: int = Field(ge=0)


class SignUploadResponse(BaseModel):
    uploadUrl: str
    storageKey: str
    expiresAt: int


class CompleteUploadRequest(BaseModel):
    kind: AssetKind
    storage_key: str = Field(min_length=1, validation_alias=AliasChoices("storageKey", "r2Key", "storage_key"))
    mime: str = Field(min_length=1)
    filename: str | None = None
    size: int = Field(ge=0)


class AssetResponse(BaseModel):
    id: str
    kind: str
    storage_key: str
    mime: str
    size: int
    filename: str | None = None
    url: str

    model_config = {"from_attributes": True}
