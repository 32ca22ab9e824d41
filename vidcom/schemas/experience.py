from pydantic import BaseModel, Field


class ExperienceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    qr_id: str | None = Field(default=None, pattern=r"^[A-Za-z0-9]{4,32}$")
    is_active: bool = True

    model_config = {"str_strip_whitespace": True}


class ExperienceUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    qr_id: str | None = Field(default=None, pattern=r"^[A-Za-z0-9]{4,32}$")
    is_active: bool | None = None

    model_config = {"str_strip_whitespace": True}
