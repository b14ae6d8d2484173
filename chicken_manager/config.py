"""
Configuration management for Chicken Manager
"""
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Chicken Manager"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./chicken_manager.db"

    # Auth collaborator: "jwt" verifies access tokens locally,
    # "remote" asks the auth server who the bearer is
    AUTH_MODE: str = "jwt"
    AUTH_JWT_SECRET: Optional[str] = None
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_JWT_AUDIENCE: str = "authenticated"
    AUTH_SERVER_URL: Optional[str] = None  # e.g. "https://<project>.supabase.co"
    AUTH_API_KEY: Optional[str] = None

    # Feed
    LOW_STOCK_THRESHOLD: float = 5

    class Config:
        env_file = ".env"
        case_sensitive = True

    @model_validator(mode="after")
    def check_auth_settings(self):
        if self.AUTH_MODE == "jwt":
            if not self.AUTH_JWT_SECRET:
                raise ValueError("AUTH_JWT_SECRET is required when AUTH_MODE=jwt")
        elif self.AUTH_MODE == "remote":
            if not self.AUTH_SERVER_URL:
                raise ValueError("AUTH_SERVER_URL is required when AUTH_MODE=remote")
        else:
            raise ValueError(f"Unknown AUTH_MODE: {self.AUTH_MODE}")
        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()
