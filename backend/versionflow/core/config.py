from typing import Dict, Optional
from urllib.parse import urlsplit

from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


# Known insecure default values that must be changed in production
_INSECURE_DB_PASSWORDS = {
    "postgres",
    "password",
    "changeme",
}

KNOWN_ENVIRONMENTS = {"production", "development", "staging", "sandbox"}
KNOWN_BUMP_LEVELS = {"MAJOR", "MINOR", "PATCH"}


def _extract_password_from_database_url(database_url: str | None) -> str | None:
    if not database_url:
        return None
    try:
        parts = urlsplit(database_url)
        return parts.password
    except ValueError:
        return None


def _default_branch_environment_map() -> Dict[str, str]:
    return {
        "main": "production",
        "master": "production",
        "production": "production",
        "develop": "development",
        "development": "development",
        "dev": "development",
        "staging": "staging",
        "uat": "staging",
        "sandbox": "sandbox",
    }


def _default_issue_type_mapping() -> Dict[str, str]:
    return {
        "BUG": "PATCH",
        "HOTFIX": "PATCH",
        "TASK": "MINOR",
        "STORY": "MINOR",
        "FEATURE": "MINOR",
        "ENHANCEMENT": "MINOR",
        "EPIC": "MAJOR",
        "BREAKING_CHANGE": "MAJOR",
    }


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")
    PROJECT_NAME: str = "versionflow"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # Database settings
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_SERVER: str = Field(
        default="db",
        validation_alias=AliasChoices("POSTGRES_SERVER", "POSTGRES_HOST", "POSTGRES_HOSTNAME"),
    )
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "versionflow"

    # Database connection pooling
    DB_POOL_SIZE: int = Field(default=10, description="Number of persistent DB connections")
    DB_MAX_OVERFLOW: int = Field(default=20, description="Max additional connections under load")

    # Full DB URL (preferred in CI/containers). If not provided, we build it from POSTGRES_*.
    DATABASE_URL: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "SQLALCHEMY_DATABASE_URI"),
    )

    SQLALCHEMY_ECHO: bool = False

    # Redis configuration (repository config cache)
    REDIS_URL: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("REDIS_URL", "CACHE_REDIS_URL"),
    )
    REPOSITORY_CONFIG_CACHE_TTL: int = 300  # seconds

    # Versioning policy defaults, overridden per repository
    VERSIONING_DEFAULT_DEVELOPMENT_BRANCH: str = "dev"
    VERSIONING_DEFAULT_BRANCH_ENVIRONMENT_MAP: Dict[str, str] = Field(
        default_factory=_default_branch_environment_map
    )
    VERSIONING_DEFAULT_ISSUE_TYPE_MAPPING: Dict[str, str] = Field(
        default_factory=_default_issue_type_mapping
    )
    # Raise instead of computing a fresh production version when nothing is promotable
    VERSIONING_STRICT_PROMOTION: bool = False

    def model_post_init(self, __context):
        """
        Validate configuration on startup. In production, fail hard if insecure defaults are detected.
        """
        # Fill DATABASE_URL if it wasn't provided explicitly
        if not self.DATABASE_URL:
            self.DATABASE_URL = (
                f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
                f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )

        is_prod = self.ENVIRONMENT.lower() == "production"
        errors = []
        db_url_password = _extract_password_from_database_url(self.DATABASE_URL)

        # Validate database credentials
        if is_prod and db_url_password and db_url_password in _INSECURE_DB_PASSWORDS:
            errors.append("DATABASE_URL contains an insecure password.")

        # In production, DEBUG must be disabled
        if is_prod and self.DEBUG:
            errors.append("DEBUG must be False in production.")

        # Default policy maps must only reference known values, in every environment
        unknown_envs = sorted(
            set(self.VERSIONING_DEFAULT_BRANCH_ENVIRONMENT_MAP.values()) - KNOWN_ENVIRONMENTS
        )
        if unknown_envs:
            errors.append(
                "VERSIONING_DEFAULT_BRANCH_ENVIRONMENT_MAP references unknown environments: "
                + ", ".join(unknown_envs)
            )
        unknown_bumps = sorted(
            {v.upper() for v in self.VERSIONING_DEFAULT_ISSUE_TYPE_MAPPING.values()} - KNOWN_BUMP_LEVELS
        )
        if unknown_bumps:
            errors.append(
                "VERSIONING_DEFAULT_ISSUE_TYPE_MAPPING references unknown bump levels: "
                + ", ".join(unknown_bumps)
            )

        # Fail hard with all errors at once for easier debugging
        if errors:
            error_msg = "Configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            raise ValueError(error_msg)


settings = Settings()
