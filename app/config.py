import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from loguru import logger
from pydantic_settings import BaseSettings


# Find .env even in frozen or packaged mode
POSSIBLE_ENV_PATHS = [
    Path(__file__).resolve().parent.parent / ".env",        # normal
    Path(sys.executable).resolve().parent / ".env",         # frozen exe
    Path.cwd() / ".env",                                    # runtime cwd
]

for env_path in POSSIBLE_ENV_PATHS:
    if env_path.exists():
        load_dotenv(env_path)
        break
else:
    logger.debug(".env file not found, using environment and defaults")


class Settings(BaseSettings):
    # Database
    DATABASE_URL: Optional[str] = None
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: str = "5432"
    DATABASE_USER: str = "postgres"
    DATABASE_PASSWORD: str = "postgres"
    DATABASE_NAME: str = "expense_tracker"

    # Session (signed JWT carried in a cookie)
    SECRET_KEY: str = "supersecretkey_change_this"
    ALGORITHM: str = "HS256"
    SESSION_COOKIE_NAME: str = "session_data"
    SESSION_EXPIRE_DAYS: int = 30
    COOKIE_SECURE: bool = False
    COOKIE_SAMESITE: str = "lax"
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60

    # Passwords
    PASSWORD_HASH_ROUNDS: int = 3

    # Misc
    APP_TIMEZONE: str = "UTC"
    EXPORT_MAX_ROWS: int = 10000
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]
    SERVER_IP: str = "127.0.0.1"
    SERVER_PORT: int = 8000

    # Logging
    LOG_FILE: str = "app.log"
    LOG_LEVEL: str = "DEBUG"
    LOG_ROTATION: str = "500 MB"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def SQLALCHEMY_DATABASE_URL(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )


settings = Settings()
