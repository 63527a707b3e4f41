import os
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


class Settings:
    # -------------------------------------------------------
    # Project
    # -------------------------------------------------------
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Family Registry API")
    API_VERSION: str = os.getenv("API_VERSION", "1.0.0")
    ENV: str = os.getenv("ENV", "dev")

    # All routers are mounted under this prefix
    API_PREFIX: str = os.getenv("API_PREFIX", "/api")

    # -------------------------------------------------------
    # Database
    # -------------------------------------------------------
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "sqlite:///./family_registry.db"
    )

    # Render uses postgres:// but SQLAlchemy needs postgresql://
    if DATABASE_URL.startswith("postgres://"):
        DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

    # -------------------------------------------------------
    # Logging
    # -------------------------------------------------------
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Optional path; no file handler when empty
    LOG_FILE: str = os.getenv("LOG_FILE", "")

    # Log every SQL statement through the "sqlalchemy.engine" logger
    SQL_ECHO: bool = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

    # -------------------------------------------------------
    # CORS
    # -------------------------------------------------------
    CORS_ORIGINS: list[str] = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]


# Single instance that is imported everywhere
settings = Settings()
