"""
Application configuration settings
"""
from typing import Dict, List
from pydantic import BaseModel
from pydantic_settings import BaseSettings


class TokenIdentity(BaseModel):
    """Identity bound to a static API token"""
    user_id: str
    role: str = "USER"


class Settings(BaseSettings):
    """Application settings"""

    PROJECT_NAME: str = "Permit Package Tracker API"
    VERSION: str = "1.0.0"
    DATABASE_URL: str = "sqlite+aiosqlite:///./permit_tracker.db"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"

    # token -> identity, e.g. API_TOKENS='{"abc": {"user_id": "u1", "role": "ADMIN"}}'
    API_TOKENS: Dict[str, TokenIdentity] = {}

    # Workflow policy flags
    STRICT_TRANSITIONS: bool = False
    ENFORCE_REQUIRED_ITEMS: bool = False
    OPTIMISTIC_CONCURRENCY: bool = False
    IDEMPOTENT_INSTANTIATION: bool = False
    SINGLE_ROOM_PER_CONNECTION: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
