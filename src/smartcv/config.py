from __future__ import annotations

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "SmartCV"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 3000
    log_level: str = "INFO"
    base_url: str = "http://localhost:3000"
    cors_origins: str = "http://localhost:3000"

    database_url: str = "sqlite:///./data/smartcv.db"

    whatsapp_token: str = ""
    whatsapp_api_url: str = "https://gate.whapi.cloud"
    telegram_token: str = ""
    telegram_api_url: str = "https://api.telegram.org"
    telegram_webhook_secret: str = ""
    channel_timeout_sec: int = 15

    paystack_secret_key: str = ""
    paystack_api_url: str = "https://api.paystack.co"
    paystack_amount: int = 50000
    paystack_timeout_sec: int = 20
    placeholder_email_domain: str = "example.com"

    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    openai_timeout_sec: int = 60
    llm_temperature: float = 0.1
    llm_max_tokens: int = 1000

    local_llm_enabled: bool = False
    local_llm_base_url: str = "http://localhost:11434/v1"
    local_llm_api_key: str = "local"
    local_llm_model: str = "qwen2.5:14b-instruct"
    local_llm_timeout_sec: int = 90

    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_sender: str = ""
    smtp_timeout_sec: int = 30

    session_ttl_sec: int = 86400
    search_cache_ttl_sec: int = 3600
    search_result_limit: int = 5
    max_cv_bytes: int = 5 * 1024 * 1024

    task_workers: int = 4
    task_timeout_sec: float = 120.0
    serialize_turns: bool = True

    antivirus_enabled: bool = True
    clamscan_path: str = "clamscan"
    clamscan_timeout_sec: int = 60

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def payment_amount_display(self) -> str:
        return f"₦{self.paystack_amount / 100:,.2f}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
