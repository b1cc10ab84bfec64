from enum import Enum

from pydantic_settings import BaseSettings, SettingsConfigDict


class Env(str, Enum):
    DEV = "dev"
    HML = "hml"
    PROD = "prod"


class Settings(BaseSettings):
    APP_ENV: Env = Env.DEV
    DEBUG: bool = False
    SECRET_KEY: str

    # vazio = assina com SECRET_KEY
    JWT_SECRET: str = ""
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15

    DATABASE_URL: str

    ALLOWED_HOSTS: str = "localhost,127.0.0.1"

    LOG_JSON: bool = True
    LOG_LEVEL: str = "INFO"

    MAIL_HOST: str = "localhost"
    MAIL_PORT: int = 1025
    MAIL_TLS: bool = False
    MAIL_USER: str = ""
    MAIL_PASS: str = ""
    MAIL_FROM: str = "no-reply@salonbook.local"
    MAIL_FROM_NAME: str = "Salonbook"

    # Twilio: sem as três variáveis o SMS é ignorado (apenas warning)
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_FROM_PHONE: str = ""
    TWILIO_API_BASE: str = "https://api.twilio.com/2010-04-01"

    REMINDER_INTERVAL_SECONDS: int = 60
    REMINDER_LEAD_MINUTES: int = 60

    # 0 = código duplicado vira 409 imediatamente (sem nova tentativa)
    BOOKING_CODE_RETRIES: int = 0

    model_config = SettingsConfigDict(
        env_file=".env.dev",
        env_file_encoding="utf-8",
        ser_json_timedelta="iso8601",
        ser_json_tz="utc",
    )


# cria instância global
settings = Settings()
