# tenancy/config.py
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    database_url: str = "sqlite:///./tenancy.db"
    engine_version: str = "2025-06-01.v1"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Notice / settlement rules ----
    notice_threshold_days: int = 30  # inclusive: exactly 30 days is proper notice
    deposit_rule_set: str = "standard"  # standard|graduated
    deposit_refund_deadline_days: int = 14
    daily_late_fee: float = 50.0

    # ---- Lease status windows ----
    expiring_soon_days: int = 31
    renewal_notice_days: int = 60
    long_term_contract_months: int = 12

    # ---- Auto-renewal ----
    auto_renewal_months: int = 6
    explicit_renewal_months: int = 12
    auto_renewal_marks_response: bool = True

    # ---- Celery ----
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"
    renewal_sweep_interval_seconds: int = 86400  # one sweep (and at most one reminder) per day

    def model_post_init(self, __context) -> None:
        rule_set = (self.deposit_rule_set or "standard").strip().lower()
        if rule_set not in ("standard", "graduated"):
            raise ValueError(f"deposit_rule_set must be standard|graduated, got {self.deposit_rule_set!r}")
        object.__setattr__(self, "deposit_rule_set", rule_set)

        if self.notice_threshold_days < 0:
            raise ValueError("notice_threshold_days cannot be negative")
        if self.expiring_soon_days >= self.renewal_notice_days:
            raise ValueError("expiring_soon_days must be smaller than renewal_notice_days")

        env = (self.app_env or "local").strip().lower()
        if env in ("prod", "production"):
            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
