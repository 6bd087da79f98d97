from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, overridable with RECIPEHUB_* env variables."""

    model_config = SettingsConfigDict(
        env_prefix="RECIPEHUB_", env_file=".env", extra="ignore"
    )

    DATABASE_URL: str = "sqlite:///./recipehub.db"
    SECRET_KEY: str = "dev-secret-key-change-in-production"

    # uploaded images are served from /images/recipes
    IMAGE_DIR: str = "static/images/recipes"

    ADMIN_EMAIL: str = "admin@recipehub.com"
    ADMIN_PASSWORD: str = "Admin123!"
    SEED_ON_STARTUP: bool = True

    LOG_LEVEL: str = "INFO"


settings = Settings()
