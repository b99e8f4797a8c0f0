"""
Application configuration settings
"""

from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    """Application settings"""

    # API Configuration
    API_HOST: str = "localhost"
    API_PORT: int = 8080
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # Guest / booking / loyalty lookups
    GUEST_API_BASE_URL: str = "http://localhost:3000"
    LOOKUP_TIMEOUT_SECONDS: float = 2.0

    # Engine
    REQUEST_DEADLINE_SECONDS: Optional[float] = 10.0
    MAX_STRATEGIES_PER_REQUEST: int = 3
    SEED_DEFAULT_CONFIG: bool = True

    # Placeholder analytics scores (not yet derived from data)
    VALUE_SCORE: float = 0.7
    ENGAGEMENT_SCORE: float = 0.6
    RISK_SCORE: float = 0.2

    class Config:
        env_file = ".env"
        case_sensitive = True

# Global settings instance
settings = Settings()
