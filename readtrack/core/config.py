from pydantic_settings import BaseSettings, SettingsConfigDict
import json
from pathlib import Path


DEFAULT_JWT_SECRET = "your-secret-key-change-in-production"


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./readtrack.db"

    # JWT
    JWT_SECRET_KEY: str = DEFAULT_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    BCRYPT_ROUNDS: int = 12

    # CORS - can be JSON string or comma-separated string
    CORS_ORIGINS: str = '["http://localhost:3000", "http://localhost:5173"]'

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Recommendations
    RECOMMENDATION_LIMIT: int = 10
    SIMILAR_BOOKS_LIMIT: int = 6

    # Reviews: optimistic-concurrency retries on the book rating revision
    RATING_UPDATE_MAX_RETRIES: int = 3

    model_config = SettingsConfigDict(
        # Load from .env in the project root (this file's parent's parent's parent)
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not self.DATABASE_URL or self.DATABASE_URL.strip() == "":
            raise RuntimeError(
                "DATABASE_URL is empty. Set DATABASE_URL in .env, e.g. DATABASE_URL=sqlite:///./readtrack.db"
            )

        if self.ENVIRONMENT == "production" and self.JWT_SECRET_KEY == DEFAULT_JWT_SECRET:
            raise RuntimeError(
                "JWT_SECRET_KEY is still the development placeholder. Set a real secret before running in production."
            )

    def get_masked_database_url(self) -> str:
        """Return DATABASE_URL with password masked for logging."""
        if "@" not in self.DATABASE_URL:
            return self.DATABASE_URL
        scheme, rest = self.DATABASE_URL.split("://", 1)
        credentials, host = rest.rsplit("@", 1)
        user = credentials.split(":", 1)[0]
        return f"{scheme}://{user}:***@{host}"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS from JSON string or comma-separated string."""
        if not self.CORS_ORIGINS:
            return ["http://localhost:3000", "http://localhost:5173"]

        try:
            parsed = json.loads(self.CORS_ORIGINS)
            if isinstance(parsed, list):
                return [str(o) for o in parsed]
            return [str(parsed)]
        except (json.JSONDecodeError, TypeError):
            origins = [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]
            return origins if origins else ["http://localhost:3000", "http://localhost:5173"]


settings = Settings()
