from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Check-Me"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"

    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "password"
    POSTGRES_DB: str = "checkme"
    DATABASE_URL: Optional[str] = None
    DB_ECHO: bool = False

    REDIS_URL: str = "redis://localhost:6379/0"

    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30
    # Tokens are issued by the identity service; only used for the docs UI
    AUTH_TOKEN_URL: str = "/api/v1/users/login"

    # "memory" keeps presence in this process, "redis" shares it across instances
    PRESENCE_BACKEND: str = "memory"
    INSTANCE_ID: Optional[str] = None

    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_REGION: str = "eu-north-1"
    BUCKET_NAME: str = "check-me-chat-documents"
    DOCUMENT_URL_EXPIRY_SECONDS: int = 3600
    MAX_DOCUMENT_SIZE_BYTES: int = 10 * 1024 * 1024

    SENDGRID_API_KEY: Optional[str] = None
    SENDGRID_API_URL: str = "https://api.sendgrid.com/v3/mail/send"
    SENDGRID_VERIFIED_SENDER: str = "no-reply@check-me.app"
    APPOINTMENT_CONFIRMATION_TEMPLATE_ID: str = "d-6c6282261bd743758f95fd8910134511"

    class Config:
        case_sensitive = True
        env_file = ".env"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not self.DATABASE_URL:
            self.DATABASE_URL = f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}/{self.POSTGRES_DB}"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

settings = Settings()
