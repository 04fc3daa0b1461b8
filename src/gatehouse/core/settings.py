"""Application settings and configuration.

This module defines all configuration options for the Gatehouse engine.
Settings are loaded from environment variables with sensible defaults; the
numeric bounds mirror what the administration surface allows operators to
store.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

Difficulty = Literal["easy", "medium", "hard"]
StoreBackend = Literal["redis", "memory"]


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    Settings can be overridden via environment variables or an ``.env`` file.
    Field names may also be passed directly, which is how tests build
    isolated configurations.
    """

    # Application metadata
    app_name: str = Field(default="Gatehouse", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Administrative surface
    admin_token: str | None = Field(default=None, alias="ADMIN_TOKEN")

    # Expiring state store
    store_backend: StoreBackend = Field(default="redis", alias="STORE_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")
    store_namespace: str = Field(default="gatehouse", alias="STORE_NAMESPACE")
    cleanup_interval_seconds: int = Field(default=0, ge=0, alias="CLEANUP_INTERVAL_SECONDS")

    # Client identity
    trust_forwarded_headers: bool = Field(default=True, alias="TRUST_FORWARDED_HEADERS")

    # Login attempt tracking
    login_max_attempts: int = Field(default=5, ge=1, le=20, alias="LOGIN_MAX_ATTEMPTS")
    login_lockout_seconds: int = Field(
        default=900, ge=60, le=86_400, alias="LOGIN_LOCKOUT_SECONDS"
    )

    # Automated client detection on login
    bot_protection_enabled: bool = Field(default=True, alias="BOT_PROTECTION_ENABLED")
    bot_login_rate_limit: int = Field(default=15, ge=1, le=1000, alias="BOT_LOGIN_RATE_LIMIT")
    bot_activity_threshold: int = Field(default=3, ge=1, le=10, alias="BOT_ACTIVITY_THRESHOLD")
    bot_block_seconds: int = Field(default=7200, ge=60, le=86_400, alias="BOT_BLOCK_SECONDS")

    # Violation ledger and automatic blacklisting
    ip_blacklist_enabled: bool = Field(default=True, alias="IP_BLACKLIST_ENABLED")
    ip_blacklist_threshold: int = Field(default=5, ge=3, le=20, alias="IP_BLACKLIST_THRESHOLD")
    ip_violation_window: int = Field(
        default=3600, ge=60, le=86_400, alias="IP_VIOLATION_WINDOW"
    )
    ip_blacklist_duration: int = Field(
        default=86_400, ge=3600, le=604_800, alias="IP_BLACKLIST_DURATION"
    )

    # Site-wide defensive mode
    under_attack_enabled: bool = Field(default=True, alias="UNDER_ATTACK_ENABLED")
    under_attack_threshold: int = Field(default=10, ge=5, le=50, alias="UNDER_ATTACK_THRESHOLD")
    under_attack_window: int = Field(default=300, ge=60, le=3600, alias="UNDER_ATTACK_WINDOW")
    under_attack_duration: int = Field(
        default=3600, ge=300, le=7200, alias="UNDER_ATTACK_DURATION"
    )

    # Math challenges
    captcha_difficulty: Difficulty = Field(default="medium", alias="CAPTCHA_DIFFICULTY")
    captcha_token_ttl: int = Field(default=600, ge=30, le=3600, alias="CAPTCHA_TOKEN_TTL")
    captcha_max_attempts: int = Field(default=0, ge=0, alias="CAPTCHA_MAX_ATTEMPTS")

    # Form submission protection
    form_rate_limit: int = Field(default=5, ge=1, le=10, alias="FORM_RATE_LIMIT")
    form_rate_window: int = Field(default=60, ge=30, le=300, alias="FORM_RATE_WINDOW")
    form_min_submission_ms: int = Field(default=2000, ge=0, alias="FORM_MIN_SUBMISSION_MS")
    honeypot_enabled: bool = Field(default=True, alias="HONEYPOT_ENABLED")
    honeypot_field: str = Field(default="website_url", alias="HONEYPOT_FIELD")
    timing_protection: bool = Field(default=True, alias="TIMING_PROTECTION")
    sql_injection_protection: bool = Field(default=True, alias="SQL_INJECTION_PROTECTION")
    obsolete_browser_blocking: bool = Field(default=True, alias="OBSOLETE_BROWSER_BLOCKING")
    caps_ratio: float = Field(default=0.7, gt=0.0, le=1.0, alias="CAPS_RATIO")
    caps_min_length: int = Field(default=50, ge=1, alias="CAPS_MIN_LENGTH")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def min_submission_seconds(self) -> float:
        """Return the timing gate threshold in seconds."""
        return self.form_min_submission_ms / 1000.0

    @property
    def public_thresholds(self) -> dict[str, dict[str, object]]:
        """Return the non-secret thresholds grouped by component.

        Returns:
            Nested dictionary suitable for transparency endpoints
        """
        return {
            "login": {
                "max_attempts": self.login_max_attempts,
                "lockout_seconds": self.login_lockout_seconds,
            },
            "bots": {
                "enabled": self.bot_protection_enabled,
                "login_rate_limit": self.bot_login_rate_limit,
                "activity_threshold": self.bot_activity_threshold,
                "block_seconds": self.bot_block_seconds,
            },
            "blacklist": {
                "enabled": self.ip_blacklist_enabled,
                "threshold": self.ip_blacklist_threshold,
                "violation_window_seconds": self.ip_violation_window,
                "duration_seconds": self.ip_blacklist_duration,
            },
            "defensive_mode": {
                "enabled": self.under_attack_enabled,
                "threshold": self.under_attack_threshold,
                "window_seconds": self.under_attack_window,
                "duration_seconds": self.under_attack_duration,
            },
            "challenge": {
                "difficulty": self.captcha_difficulty,
                "token_ttl_seconds": self.captcha_token_ttl,
                "max_attempts": self.captcha_max_attempts,
            },
            "forms": {
                "rate_limit": self.form_rate_limit,
                "rate_window_seconds": self.form_rate_window,
                "min_submission_ms": self.form_min_submission_ms,
                "honeypot_enabled": self.honeypot_enabled,
                "timing_protection": self.timing_protection,
                "sql_injection_protection": self.sql_injection_protection,
                "obsolete_browser_blocking": self.obsolete_browser_blocking,
            },
        }


settings = Settings()
