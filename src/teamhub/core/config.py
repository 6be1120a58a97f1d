# src/teamhub/core/config.py
from dotenv import load_dotenv
load_dotenv(".env")
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, computed_field


class Settings(BaseSettings):
    # model_config 会自动加载 .env 文件
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # 应用配置 (会自动转换类型)
    APP_ENV: str = "production"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000

    # --- Database ---
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "teamhub"
    DB_PASSWORD: str = "teamhub"
    DB_NAME: str = "teamhub"

    @computed_field
    @property
    def DATABASE_URL(self) -> str:
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # 测试库默认使用一次性的 SQLite 文件，conftest 会为每个测试替换路径
    DATABASE_URL_TEST: str = "sqlite+aiosqlite:///./teamhub_test.db"

    # JWT (由外部身份提供方签发，这里只负责校验)
    SECRET_KEY: str = Field("change-me", description="HMAC key shared with the identity provider.")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Membership rules ---
    INVITATION_TTL_DAYS: int = Field(7, ge=1, description="Days an invitation stays pending before it expires.")

    # --- Audit trail ---
    AUDIT_QUEUE_MAXSIZE: int = Field(1000, ge=1, description="Upper bound of buffered audit events.")
    ACTIVITY_FEED_LIMIT: int = 50

settings = Settings()
