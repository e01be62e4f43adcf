from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional

class Settings(BaseSettings):
    # Database
    database_url: Optional[str] = Field(default=None, alias='DATABASE_URL')
    db_user: str = Field(default='postgres', alias='DB_USER')
    db_host: str = Field(default='localhost', alias='DB_HOST')
    db_password: str = Field(default='postgres', alias='DB_PASSWORD')
    db_port: int = Field(default=5432, alias='DB_PORT')
    db_name: str = Field(default='event_ticketing', alias='DB_NAME')

    # Stripe - Pasarela de pagos
    stripe_secret_key: Optional[str] = Field(default=None, alias='STRIPE_SECRET_KEY')
    stripe_publishable_key: Optional[str] = Field(default=None, alias='STRIPE_PUBLISHABLE_KEY')
    stripe_webhook_secret: Optional[str] = Field(default=None, alias='STRIPE_WEBHOOK_SECRET')
    stripe_currency: str = Field(default='usd', alias='STRIPE_CURRENCY')
    payment_gateway: str = Field(default='stripe', alias='PAYMENT_GATEWAY')

    # AWS SES (para emails)
    aws_access_key_id: Optional[str] = Field(default=None, alias='AWS_ACCESS_KEY_ID')
    aws_secret_access_key: Optional[str] = Field(default=None, alias='AWS_SECRET_ACCESS_KEY')
    aws_region: Optional[str] = Field(default=None, alias='AWS_REGION')
    aws_ses_from_email: Optional[str] = Field(default=None, alias='AWS_SES_FROM_EMAIL')
    aws_ses_from_name: str = Field(default='Event Tickets', alias='EMAIL_FROM_NAME')

    # App settings
    app_env: str = Field(default="development", alias='APP_ENV')
    base_url: str = Field(default="http://localhost:8001", alias='BASE_URL')
    frontend_url: str = Field(default="http://localhost:3000", alias='FRONTEND_URL')

    # FastAPI specific
    port: int = Field(default=8001, alias='FASTAPI_PORT')
    host: str = Field(default="0.0.0.0", alias='FASTAPI_HOST')
    debug: bool = Field(default=True, alias='DEBUG')

    # CORS configuration
    cors_origins: str = Field(default="http://localhost:3000", alias='CORS_ORIGINS')

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def db_connection_params(self) -> dict:
        if self.database_url:
            return {"dsn": self.database_url}
        return {
            "host": self.db_host,
            "port": self.db_port,
            "user": self.db_user,
            "password": self.db_password,
            "database": self.db_name,
        }

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

settings = Settings()
