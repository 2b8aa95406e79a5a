from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the application
    """

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", case_sensitive=False
    )

    app_name: str = "Sistema de Firma de Documentos"
    environment: str = "development"
    allowed_cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    database_url: Optional[str] = None
    db_user: str = "postgres"
    db_password: str = "root"
    db_host: str = "db"
    db_port: int = 5432
    db_name: str = "dp-db"

    secret_key: str = "your-secret-key-here"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    upload_dir: str = "uploads"
    max_file_size: int = 10 * 1024 * 1024  # 10 MB

    log_level: str = "INFO"
    log_json: bool = False

    job_poll_interval_seconds: int = 10
    job_batch_size: int = 25
    job_max_retries: int = 3

    webhook_timeout_seconds: float = 10.0

    two_factor_issuer: str = "Firma Documentos"

    @property
    def db_url(self) -> str:
        """
        Database URL, explicit DATABASE_URL wins over the db_* parts
        """
        if self.database_url:
            return self.database_url
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_cors_origins.split(",") if origin.strip()]


settings = Settings()
