from typing import Annotated, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./data/vidcom.sqlite3"
    data_dir: str = "./data/objects"

    storage_backend: Literal["local", "s3"] = "local"
    s3_bucket: str = ""
    s3_endpoint_url: str | None = None
    s3_access_key: str = ""
    s3_secret_key: str = ""
    s3_region: str = "auto"

    public_base_url: str = "http://localhost:8000"
    public_asset_base_url: str | None = None  # set when the bucket is publicly readable

    signing_secret: str = "dev-signing-secret"
    upload_url_ttl_seconds: int = 900
    max_upload_size_bytes: int = 200 * 1024 * 1024

    auth_token_mode: Literal["session", "signed"] = "session"
    token_ttl_days: int = 7

    admin_email: str = ""
    admin_password: str = ""

    job_secret: str = ""  # empty = machine callers rejected

    mindar_dispatch_mode: Literal["none", "local", "workflow"] = "none"
    mindar_workflow_repo: str = ""
    mindar_workflow_file: str = "mindar.yml"
    mindar_workflow_ref: str = "main"
    mindar_workflow_token: str = ""
    mindar_api_base_url: str | None = None

    qr_id_length: int = 10
    qr_id_attempts: int = 5

    cors_origins: Annotated[list[str], NoDecode] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("qr_id_length")
    @classmethod
    def clamp_qr_length(cls, value: int) -> int:
        return max(10, min(12, value))

    @property
    def api_base_for_jobs(self) -> str:
        return (self.mindar_api_base_url or self.public_base_url).rstrip("/")
