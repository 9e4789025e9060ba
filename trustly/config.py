import json
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load env values for components that read os.environ directly (e.g., boto3).
_project_root = Path(__file__).resolve().parents[1]
load_dotenv(_project_root / ".env", override=False)


def _coerce_json(value: str):
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./trustly.db"
    DB_POOL_SIZE: int = 20
    DB_POOL_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30

    BACKEND_CORS_ORIGINS: list[str] = ["http://localhost:5173"]
    # Origin of the customer-facing app; submission links and the widget snippet are built from it.
    PUBLIC_APP_BASE_URL: str = "http://localhost:5173"

    # Hosted auth provider (GoTrue-compatible REST API + JWKS).
    AUTH_API_BASE_URL: str | None = None
    AUTH_API_KEY: str | None = None
    AUTH_JWKS_URL: str | None = None
    AUTH_JWT_ISSUER: str | None = None
    AUTH_AUDIENCE: list[str] = ["authenticated"]
    AUTH_REQUEST_TIMEOUT_SECONDS: float = 10.0

    RESEND_API_KEY: str | None = None
    RESEND_API_BASE_URL: str = "https://api.resend.com"
    EMAIL_FROM_ADDRESS: str = "onboarding@resend.dev"
    EMAIL_REQUEST_TIMEOUT_SECONDS: float = 15.0

    MEDIA_STORAGE_ENDPOINT: str | None = None
    MEDIA_STORAGE_REGION: str = "us-east-1"
    MEDIA_STORAGE_ACCESS_KEY: str | None = None
    MEDIA_STORAGE_SECRET_KEY: str | None = None
    # Public objects are served from <base>/<bucket>/<key>; falls back to the endpoint.
    MEDIA_STORAGE_PUBLIC_BASE_URL: str | None = None
    MEDIA_STORAGE_USE_SSL: bool = True
    MEDIA_STORAGE_FORCE_PATH_STYLE: bool = True
    MEDIA_STORAGE_CACHE_CONTROL: str = "max-age=3600"

    LOGO_BUCKET: str = "business-logos"
    PHOTO_BUCKET: str = "testimonial-photos"
    VIDEO_BUCKET: str = "testimonial-videos"
    WELCOME_VIDEO_BUCKET: str = "campaign-welcome-videos"

    LOGO_MAX_BYTES: int = 5 * 1024 * 1024
    WELCOME_VIDEO_MAX_BYTES: int = 50 * 1024 * 1024
    TESTIMONIAL_MEDIA_MAX_BYTES: int = 50 * 1024 * 1024

    DUPLICATE_SUBMISSION_WINDOW_SECONDS: int = 5 * 60
    ANALYTICS_DEFAULT_RANGE_DAYS: int = 30

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def split_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("AUTH_AUDIENCE", mode="before")
    @classmethod
    def split_audience(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return [aud.strip() for aud in value.split(",") if aud.strip()]
        return value

    @property
    def app_base_url(self) -> str:
        return self.PUBLIC_APP_BASE_URL.rstrip("/")

    model_config = SettingsConfigDict(env_file=".env", env_json_loads=_coerce_json, extra="ignore")


settings = Settings()
