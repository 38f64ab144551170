"""
Application Configuration
Loads and validates environment variables
"""
from pydantic_settings import BaseSettings
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Accommodation Reservation System"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "accommodation_requests"
    GRIDFS_BUCKET: str = "purchase_orders"

    # JWT (tokens are issued by the identity service)
    SECRET_KEY: str = "your-super-secret-key-change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    AUTH_TOKEN_URL: str = "/api/auth/login"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8080"
    CORS_ALLOW_CREDENTIALS: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"

    # Reservations
    DEFAULT_CURRENCY: str = "DZD"
    DEFAULT_COUNTRY: str = "Algérie"

    # Organisation printed on purchase orders
    ORG_NAME: str = "DIRECTION LOGISTIQUE"
    ORG_DIVISION: str = "Division Production"
    ORG_DEPARTMENT: str = "Direction Finance & Comptabilité"
    ORG_ADDRESS: str = "Siège social"

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert CORS origins string to list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Global settings instance
settings = get_settings()
