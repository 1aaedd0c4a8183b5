"""
Oficina Server - Configuration
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional
import secrets
from pathlib import Path
from dotenv import load_dotenv

# Carrega .env com override para sobrescrever variáveis do sistema
env_file = Path(__file__).parent.parent.parent / ".env"
if env_file.exists():
    load_dotenv(env_file, override=True)


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Oficina Server"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Database (accepts DATABASE_URL or OFICINA_DATABASE_URL)
    DATABASE_URL: Optional[str] = None
    OFICINA_DATABASE_URL: str = "sqlite+aiosqlite:///./oficina.db"

    @property
    def db_url(self) -> str:
        """Returns DATABASE_URL if set, otherwise OFICINA_DATABASE_URL"""
        return self.DATABASE_URL or self.OFICINA_DATABASE_URL

    # Security (tokens são emitidos pelo provedor de identidade externo)
    SECRET_KEY: str = secrets.token_urlsafe(32)
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # CORS
    CORS_ORIGINS: list = ["*"]

    # Rate limiting (slowapi)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "120/minute"

    # Pagamentos: tolerância de 1 centavo nas comparações de saldo
    PAYMENT_EPSILON: float = 0.01

    class Config:
        extra = "ignore"
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
