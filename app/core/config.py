"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for required variables.
"""
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

# Environments where a single process may use the in-process account lock
LOCAL_ENVS = ("local", "test")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: Credentials have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # Comma-separated list of allowed origins. Empty = built-in default list.
    cors_origins: str = ""

    # ===========================================
    # DATABASE
    # ===========================================
    database_url: str  # Required, no default

    # ===========================================
    # REDIS
    # ===========================================
    redis_url: str  # Required, no default

    # ===========================================
    # SESSIONS (identity provider tokens)
    # ===========================================
    session_secret: str  # Required, no default
    session_ttl: int = 86400  # 24 hours

    # ===========================================
    # UNLOCK ENGINE
    # ===========================================
    unlock_unit_cost: int = 1  # credits per newly unlocked record
    unlock_lock_backend: str = "redis"  # redis, local
    unlock_lock_timeout_seconds: float = 10.0  # lock auto-expiry
    unlock_lock_wait_seconds: float = 5.0  # how long a request waits for the lock

    # ===========================================
    # VERTICALS & RECORDS
    # ===========================================
    # Optional YAML file replacing the built-in vertical catalog.
    verticals_file: str | None = None
    records_default_limit: int = 100
    records_max_limit: int = 500
    ledger_history_limit: int = 30

    # ===========================================
    # ADMIN API
    # ===========================================
    admin_api_key: str | None = None  # Optional; admin routes are disabled without it

    # ===========================================
    # LOGGING
    # ===========================================
    request_id_header: str = "X-Request-Id"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("unlock_unit_cost")
    @classmethod
    def validate_unit_cost(cls, v: int) -> int:
        """A free unlock would make the ledger meaningless."""
        if v <= 0:
            raise ValueError("unlock_unit_cost must be greater than 0")
        return v

    @field_validator("unlock_lock_backend")
    @classmethod
    def validate_lock_backend(cls, v: str) -> str:
        value = v.lower().strip()
        if value not in ("redis", "local"):
            raise ValueError("unlock_lock_backend must be 'redis' or 'local'")
        return value

    @field_validator("session_secret")
    @classmethod
    def validate_session_secret(cls, v: str) -> str:
        """Ensure session secret is reasonably secure."""
        if len(v) < 16:
            raise ValueError("session_secret must be at least 16 characters")
        if v in ("changeme", "secret", "password", "admin"):
            raise ValueError("session_secret is too weak, please change it")
        return v

    @model_validator(mode="after")
    def validate_lock_backend_env(self) -> "Settings":
        """The local lock only serializes one process."""
        if self.unlock_lock_backend == "local" and self.app_env not in LOCAL_ENVS:
            raise ValueError(f"unlock_lock_backend=local is not allowed with app_env={self.app_env}")
        return self

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
