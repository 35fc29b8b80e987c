"""
Configuration de l'application / Application configuration.
Utilise pydantic-settings pour charger depuis .env ou variables d'environnement.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "LTIPN Booking Desk"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = True

    # Database - SQLite par défaut pour le développement
    # Database - SQLite by default for development
    DATABASE_URL: str = "sqlite+aiosqlite:///./ltipn.db"

    # CORS - origines autorisées / allowed origins
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # JWT Authentication
    SECRET_KEY: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30

    # Rate Limiting
    RATE_LIMIT_LOGIN: str = "5/minute"

    # Seed admin (premier demarrage) / Seed admin (first startup)
    SEED_ADMIN_USERNAME: str = "admin"
    SEED_ADMIN_PASSWORD: str = "admin"
    SEED_ADMIN_EMAIL: str = "admin@ltipn.ma"

    # SMTP - vide = envoi desactive (log uniquement) / empty = sending disabled (log only)
    SMTP_SERVER: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT_SECONDS: int = 30
    MAIL_FROM: str = "noreply@ltipn.ma"
    MAIL_FROM_NAME: str = "LTIPN"

    # Boite operations (copie de chaque nouvelle reservation) / Operations mailbox
    NOTIFICATION_EMAIL: str = "operations@ltipn.ma"

    # Regles metier / Business rules
    DEFAULT_CURRENCY: str = "MAD"
    DEPARTURE_CITIES: list[str] = ["Agadir", "Casablanca"]
    HUB_CITY: str = "Dakhla"
    MAX_NBR_LTC: int = 100

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
