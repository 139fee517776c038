from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "BaoKimConnect"
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    PORT: int = 8080

    # Публичный адрес сервиса (для webhooks в заказе)
    PUBLIC_BASE_URL: str = "http://localhost:8080"

    # --- BaoKim ---
    ENABLE_LIVE_PAYMENTS: bool = False
    BAOKIM_LIVE_URL: str = "https://api.baokim.vn"
    BAOKIM_SANDBOX_URL: str = "https://sandbox-api.baokim.vn"
    BAOKIM_PROTOCOL: str = "payment_v4"  # payment_v4 | api_v4
    BAOKIM_TOKEN_EXPIRE_SEC: int = 60
    BAOKIM_BANK_LIST_TTL_SEC: int = 86400
    BAOKIM_WEBHOOK_URL: Optional[str] = None

    HTTP_TIMEOUT_SEC: int = 15

    # Код ответа шлюзу, если колбэк не прошёл проверку и код не задан явно
    CALLBACK_FAILURE_HTTP_CODE: int = 500

    # Admin
    ADMIN_SECRET: str = "replace_me"

    # DB
    DB_FILE: str = "./data/baokim.sqlite3"

settings = Settings()
