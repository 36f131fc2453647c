# tenancy/schemas.py
from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


# -------------------- Termination --------------------

class DeductionIn(BaseModel):
    reason: str = ""
    amount: float = Field(ge=0)


class TerminationActionIn(BaseModel):
    """Body of POST /leases/{id}/termination/{action}; fields unused by an action are ignored."""

    termination_date: Optional[date] = None
    reason: Optional[str] = None
    deductions: Optional[list[DeductionIn]] = None
    return_override: Optional[float] = Field(default=None, ge=0)
    allow_after_contract_end: bool = True


class DeductionsIn(BaseModel):
    deductions: list[DeductionIn] = Field(default_factory=list)
    return_override: Optional[float] = Field(default=None, ge=0)


# -------------------- Outputs --------------------

class SettlementOut(BaseModel):
    notice_days: int
    scenario: str
    scenario_label: str
    has_proper_notice: bool
    rule_set: str
    deposit_amount: float
    recommended_return: float
    deduction_total: float
    deduction_reason: str
    ledger_total: float
    return_override: Optional[float] = None
    final_return: float
    is_full_return: bool
    is_full_forfeit: bool


class LeaseStatusOut(BaseModel):
    lease_id: int
    phase: str
    label: str
    days_left: Optional[int] = None
    urgent: bool
    should_notify: bool
    should_auto_renew: bool
    renewal_due: bool
    notification_kind: Optional[str] = None
    renewal_months: Optional[int] = None
    is_long_term: bool
    auto_renewal_applied: bool
    termination_status: Optional[str] = None
    allowed_actions: list[str] = Field(default_factory=list)


class TransitionOut(BaseModel):
    lease_id: int
    action: Optional[str] = None
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    version: int
    settlement: Optional[SettlementOut] = None
    notified: bool = False


class RefundOut(BaseModel):
    refundable_amount: float
    can_refund: bool
    blocking_reasons: list[str] = Field(default_factory=list)
    refund_deadline: Optional[date] = None
    late_days: int = 0
    late_fee: float = 0.0
