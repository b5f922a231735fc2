import json
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

_PACKAGE_ROOT = Path(__file__).resolve().parent


class Settings(BaseSettings):
    app_name: str = "Property Reviews Dashboard"
    app_env: str = "dev"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    hostaway_account_id: str = ""
    hostaway_access_token: str = ""
    hostaway_use_sandbox: bool = False
    hostaway_api_url: str = "https://api.hostaway.com"
    hostaway_sandbox_url: str = "https://api.sandbox.hostaway.com"
    hostaway_page_limit: int = 100
    hostaway_mock_path: str = str(_PACKAGE_ROOT / "data" / "mocked_hostaway.json")

    google_places_api_key: str = ""
    google_places_url: str = "https://maps.googleapis.com/maps/api/place/details/json"
    google_listing_names: Annotated[dict[str, str], NoDecode] = Field(default_factory=dict)

    approvals_path: str = "data/approvals.json"
    http_timeout_seconds: float = 10.0

    trend_period: str = "day"
    trend_max_buckets: int = 30
    week_start: int = Field(default=6, ge=0, le=6)

    cors_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"])

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value: object) -> object:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("google_listing_names", mode="before")
    @classmethod
    def parse_google_listing_names(cls, value: object) -> object:
        if not isinstance(value, str):
            return value

        raw = value.strip()
        if raw.startswith("{"):
            return json.loads(raw)

        # place_id=Listing Name,other_place_id=Other Listing
        mapping: dict[str, str] = {}
        for item in raw.split(","):
            place_id, separator, listing_name = item.partition("=")
            if separator and place_id.strip() and listing_name.strip():
                mapping[place_id.strip()] = listing_name.strip()
        return mapping

    @field_validator("trend_period", mode="before")
    @classmethod
    def parse_trend_period(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower() or "day"
        return value

    @property
    def hostaway_base_url(self) -> str:
        return self.hostaway_sandbox_url if self.hostaway_use_sandbox else self.hostaway_api_url

    @property
    def has_hostaway_credentials(self) -> bool:
        return bool(self.hostaway_account_id and self.hostaway_access_token)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
