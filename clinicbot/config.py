from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ---- Environment ----
    ENV: str = Field(default="development")

    # ---- WhatsApp Cloud API ----
    META_VERIFY_TOKEN: Optional[str] = Field(default=None)
    WHATSAPP_PHONE_NUMBER_ID: Optional[str] = Field(default=None)
    WHATSAPP_ACCESS_TOKEN: Optional[str] = Field(default=None)
    WHATSAPP_API_VERSION: str = Field(default="v20.0")
    WHATSAPP_REQUEST_TIMEOUT: int = Field(default=10)

    # ---- Booking ----
    # Receives booking notices and cancellation alerts. Disabled when unset.
    NOTIFY_RECIPIENT: Optional[str] = Field(default=None)
    # Used to build the "conectar google" link; falls back to the request host.
    PUBLIC_BASE_URL: Optional[str] = Field(default=None)

    # ---- Google OAuth / Calendar ----
    GOOGLE_CLIENT_ID: Optional[str] = Field(default=None)
    GOOGLE_CLIENT_SECRET: Optional[str] = Field(default=None)
    GOOGLE_REDIRECT_URI: Optional[str] = Field(default=None)

    # ---- App / Deployment ----
    APP_HOST: str = Field(default="0.0.0.0")
    APP_PORT: int = Field(default=3000)

    # ---- Logging ----
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE_PATH: Optional[str] = Field(default="clinicbot.log")

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
