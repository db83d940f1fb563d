"""Application settings loaded from the process environment and .env"""
import ssl
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL

# Project root; .env is resolved from here regardless of the working directory
BASE_DIR = Path(__file__).resolve().parent.parent

DEFAULT_JWT_SECRET = "token"


class Settings(BaseSettings):
    app_name: str = "Planilla - payroll administration API"
    # NODE_ENV=production switches to the *_PROD database variables and TLS
    node_env: str = "development"
    log_level: str = "INFO"

    pg_user_dev: Optional[str] = None
    pg_password_dev: Optional[str] = None
    pg_host_dev: str = "localhost"
    pg_port_dev: int = 5432
    pg_database_dev: Optional[str] = None

    pg_user_prod: Optional[str] = None
    pg_password_prod: Optional[str] = None
    pg_host_prod: str = "localhost"
    pg_port_prod: int = 5432
    pg_database_prod: Optional[str] = None

    db_pool_size: int = 10
    db_max_overflow: int = 0
    db_echo: bool = False

    host: str = "0.0.0.0"
    port: int = 3000
    cors_origin_regex: str = ".*"

    # Unset JWT_SECRET falls back to an insecure literal; startup warns about it
    jwt_secret: str = DEFAULT_JWT_SECRET
    # 400 by default; 404 keeps the legacy answer for unparsable fortnight timestamps
    invalid_timestamp_status: int = 400

    class Config:
        env_file = str(BASE_DIR / ".env")
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.node_env.strip().lower() == "production"

    @property
    def uses_default_secret(self) -> bool:
        return self.jwt_secret == DEFAULT_JWT_SECRET

    @property
    def database_url(self) -> URL:
        suffix = "prod" if self.is_production else "dev"
        return URL.create(
            "postgresql+asyncpg",
            username=getattr(self, f"pg_user_{suffix}"),
            password=getattr(self, f"pg_password_{suffix}"),
            host=getattr(self, f"pg_host_{suffix}"),
            port=getattr(self, f"pg_port_{suffix}"),
            database=getattr(self, f"pg_database_{suffix}"),
        )

    def connect_args(self) -> dict:
        """asyncpg connect() kwargs; production encrypts without verifying the certificate."""
        if not self.is_production:
            return {}
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        return {"ssl": ctx}


settings = Settings()


def get_settings() -> Settings:
    return settings
