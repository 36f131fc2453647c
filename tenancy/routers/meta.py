# tenancy/routers/meta.py
from __future__ import annotations

from fastapi import APIRouter

from ..config import settings
from ..domain.settlement import deposit_rules

router = APIRouter(tags=["meta"])


@router.get("/health", response_model=dict)
def health():
    return {"ok": True, "env": settings.app_env, "version": settings.engine_version}


@router.get("/meta/deposit-rules", response_model=dict)
def get_deposit_rules():
    return {
        "rule_set": settings.deposit_rule_set,
        "notice_threshold_days": settings.notice_threshold_days,
        "rules": deposit_rules(),
    }
