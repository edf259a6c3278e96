"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

The reCAPTCHA keys are optional at load time so that a process can start
without them (rendering then embeds an empty key and verification is
rejected by the authority); callers decide whether that is acceptable.
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

RECAPTCHA_API_SERVER = "https://www.google.com/recaptcha/api"
RECAPTCHA_VERIFY_URL = f"{RECAPTCHA_API_SERVER}/verify"


class CaptchaSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    recaptcha_public_key: str = ""
    recaptcha_private_key: str = ""

    # Challenge / noscript endpoints live under the api server
    recaptcha_api_server: str = RECAPTCHA_API_SERVER
    recaptcha_verify_url: str = RECAPTCHA_VERIFY_URL

    recaptcha_timeout_seconds: float = 5.0


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production

    # Hash client IPs before they reach the logs
    hash_ips: bool = False


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "development"

    # Sub-configs (composed via model_validator below)
    captcha: Optional[CaptchaSettings] = None
    logging: Optional[LoggingSettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.captcha is None:
            self.captcha = CaptchaSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
            # Production hashes IPs unless HASH_IPS is set explicitly
            if self.is_production and "hash_ips" not in self.logging.model_fields_set:
                self.logging.hash_ips = True

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
