from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    db_path: str = "pending_payments.json"
    pending_namespace: str = "pending_payments"
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    # Stands in for the platform's "receive SMS" capability
    sms_permission_granted: bool = True
    alert_title: str = "💸 New Payment Detected!"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
