"""
Settings

Read from environment variables (case-sensitive), then from a .env file
in the working directory. Defaults are for local development only.
"""
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    get_settings() caches one instance per process. Tests that need other
    values either patch attributes on that instance or call
    get_settings.cache_clear() after changing the environment.
    """

    # Database
    DATABASE_URL: str = "sqlite:///./teamkit.db"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40

    # Tokens
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Runtime
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Feature switches (disabled routes answer 404)
    FEATURE_PATIENTS: bool = True
    FEATURE_TEAM_DELETION: bool = True

    # 404 hides team existence from non-members; set to 403 to reveal it
    NOT_A_MEMBER_STATUS_CODE: int = 404

    AUDIT_ENABLED: bool = True

    INVITATION_EXPIRE_DAYS: int = 7
    PATIENT_RETENTION_YEARS: int = 7

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()
