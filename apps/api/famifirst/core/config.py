from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "dev"
    root_path: str = ""
    log_level: str = "INFO"
    internal_admin_token: str = "change-me"

    postgres_db: str = "famifirst"
    postgres_user: str = "famifirst_user"
    postgres_password: str = "famifirst_pass"
    postgres_host: str = "db"
    postgres_port: int = 5432
    # Upper bound for a single statement; a unit of work that exceeds it is rolled back.
    db_statement_timeout_ms: int = 10000
    redis_host: str = "redis"
    redis_port: int = 6379

    jwt_secret: str = "change-me-too"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    invitation_ttl_days: int = 7
    recurrence_window_days: int = 30
    frontend_url: str = "http://localhost:3000"
    notification_timeout_seconds: float = 5.0

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def celery_broker_url(self) -> str:
        return f"redis://{self.redis_host}:{self.redis_port}/0"


settings = Settings()
