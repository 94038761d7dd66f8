import os
from functools import lru_cache
from typing import List, Optional

from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEVELOPMENT_SECRET_KEY = "campus-events-development-secret-key-change-me"


class Settings(BaseModel):
    """Runtime configuration, read from the environment or a .env file."""

    database_url: str = Field(default="sqlite:///./campus_events.db")
    secret_key: str = Field(default=DEVELOPMENT_SECRET_KEY, description="JWT signing key")
    jwt_expiry_days: int = Field(default=7, gt=0)

    admin_email: Optional[str] = None
    admin_password: Optional[str] = None
    admin_college_id: Optional[str] = None

    sendgrid_api_key: Optional[str] = None
    sendgrid_from_email: Optional[str] = None
    verification_token_length: int = Field(default=8, ge=4, le=32)

    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @property
    def uses_development_key(self) -> bool:
        return self.secret_key == DEVELOPMENT_SECRET_KEY

    @classmethod
    def from_env(cls) -> "Settings":
        values = {
            "database_url": os.getenv("DATABASE_URL"),
            "secret_key": os.getenv("SECRET_KEY"),
            "jwt_expiry_days": os.getenv("JWT_EXPIRY_DAYS"),
            "admin_email": os.getenv("ADMIN_EMAIL"),
            "admin_password": os.getenv("ADMIN_PASSWORD"),
            "admin_college_id": os.getenv("ADMIN_COLLEGE_ID"),
            "sendgrid_api_key": os.getenv("SENDGRID_API_KEY"),
            "sendgrid_from_email": os.getenv("SENDGRID_FROM_EMAIL"),
            "verification_token_length": os.getenv("VERIFICATION_TOKEN_LENGTH"),
            "log_level": os.getenv("LOG_LEVEL"),
        }
        origins = os.getenv("CORS_ORIGINS")
        if origins:
            values["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]
        return cls(**{k: v for k, v in values.items() if v is not None})


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()
