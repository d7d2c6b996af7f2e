from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    secret_key: str
    database_url: str
    backend_cors_origins: str = "http://localhost:3000"
    sql_echo: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    access_token_expire_minutes: int = 60 * 24 * 7
    reset_token_expire_minutes: int = 60
    frontend_url: str = "http://localhost:3000"

    upload_dir: str = "uploads"
    max_upload_size: int = 50 * 1024 * 1024

    email_backend: str = "console"  # "console" | "smtp"
    email_from: str = "noreply@requirementshub.com"
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = False

    rate_limit_enabled: bool = True
    auth_rate_limit: str = "5/minute"
    search_max_workers: int = 4

    class Config:
        env_file = ".env"
        extra = "allow"

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.backend_cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
