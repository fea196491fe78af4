"""
Configuration de l'application / Application configuration.
Utilise pydantic-settings pour charger depuis .env ou variables d'environnement.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "DK Automotive"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True

    # Database - SQLite par défaut pour le développement
    # Database - SQLite by default for development
    DATABASE_URL: str = "sqlite+aiosqlite:///./dk_automotive.db"

    # CORS - origines autorisées / allowed origins
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:8080"]

    # JWT Authentication
    SECRET_KEY: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Rate Limiting
    RATE_LIMIT_LOGIN: str = "5/minute"
    RATE_LIMIT_REGISTER: str = "3/minute"
    RATE_LIMIT_DEFAULT: str = "120/minute"
    RATE_LIMIT_ENABLED: bool = True

    # Stockage fichiers / File storage
    STORAGE_DIR: str = "data/storage"
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    MAX_UPLOAD_SIZE_BYTES: int = 10 * 1024 * 1024  # 10 MB
    ALLOWED_UPLOAD_MIME_TYPES: list[str] = [
        "application/pdf",
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/svg+xml",
    ]

    # Tarification / Pricing
    DEFAULT_VAT_RATE: float = 20.0
    ROAD_DISTANCE_FACTOR: float = 1.3

    # Comptes / Accounts
    ADMIN_INVITE_EXPIRE_HOURS: int = 72
    DEFAULT_ADMIN_EMAIL: str = "admin@dkautomotive.fr"
    DEFAULT_ADMIN_PASSWORD: str = "admin"

    # Identité société (documents PDF) / Company identity (PDF documents)
    COMPANY_NAME: str = "DK AUTOMOTIVE"
    COMPANY_ADDRESS: str = "France"
    COMPANY_SIRET: str = ""
    COMPANY_EMAIL: str = "contact@dkautomotive.fr"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
