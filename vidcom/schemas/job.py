from pydantic import BaseModel, Field


class DispatchRequest(BaseModel):
    pairId: str = Field(min_length=1)


class JobCompleteRequest(BaseModel):
    pairId: str = Field(min_length=1)
    mindAssetId: str | None = None
    error: str | None = None
