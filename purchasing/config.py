import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Database
    POSTGRES_CONNECTION_STRING: str = os.getenv("POSTGRES_CONNECTION_STRING", "")
    EXPLICIT_DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    # Auth
    TOKEN_TTL_MINUTES: int = int(os.getenv("TOKEN_TTL_MINUTES", "60"))
    ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL", "admin@purchasing.local")
    ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "admin")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def DATABASE_URL(self) -> str:
        """Асинхронный URL для приложения"""
        if self.EXPLICIT_DATABASE_URL:
            return self.EXPLICIT_DATABASE_URL
        return self.POSTGRES_CONNECTION_STRING.replace("postgres://", "postgresql+asyncpg://")

    @property
    def SYNC_DATABASE_URL(self) -> str:
        """Синхронный URL для Alembic"""
        if self.EXPLICIT_DATABASE_URL:
            return self.EXPLICIT_DATABASE_URL.replace("+asyncpg", "").replace("+aiosqlite", "")
        return self.POSTGRES_CONNECTION_STRING.replace("postgres://", "postgresql://")


settings = Settings()
