# tenancy/domain/settlement.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from enum import Enum
from typing import Any, Optional

from ..config import settings
from .dates import as_date, require_date, whole_days_between
from .deductions import DeductionLedger, clamp, round2
from .errors import ValidationError


class DepositRuleSet(str, Enum):
    # >= 30 days notice: full deposit back; otherwise the whole deposit is kept
    STANDARD = "standard"
    # older contract-phase rules: one month of rent withheld in several cases
    GRADUATED = "graduated"


class SettlementScenario(str, Enum):
    INDEFINITE_NOTICE_OK = "indefinite_notice_ok"
    INDEFINITE_NOTICE_LATE = "indefinite_notice_late"
    AT_END_NOTICE_OK = "at_end_notice_ok"
    AT_END_NOTICE_LATE = "at_end_notice_late"
    EARLY_NOTICE_OK = "early_notice_ok"
    EARLY_NOTICE_LATE = "early_notice_late"


class TerminationTiming(str, Enum):
    INDEFINITE = "indefinite"
    AT_END = "at_end"
    EARLY = "early"


SCENARIO_LABELS: dict[SettlementScenario, str] = {
    SettlementScenario.INDEFINITE_NOTICE_OK: "Indefinite contract · notice of 30+ days",
    SettlementScenario.INDEFINITE_NOTICE_LATE: "Indefinite contract · notice under 30 days",
    SettlementScenario.AT_END_NOTICE_OK: "Leaving at contract end · notice of 30+ days",
    SettlementScenario.AT_END_NOTICE_LATE: "Leaving at contract end · notice under 30 days",
    SettlementScenario.EARLY_NOTICE_OK: "Early termination · notice of 30+ days",
    SettlementScenario.EARLY_NOTICE_LATE: "Early termination · notice under 30 days",
}


@dataclass(frozen=True)
class SettlementResult:
    notice_days: int
    scenario: SettlementScenario
    deposit_amount: float
    recommended_return: float
    deduction_total: float
    deduction_reason: str
    final_return: float
    rule_set: DepositRuleSet = DepositRuleSet.STANDARD
    ledger_total: float = 0.0
    return_override: Optional[float] = None

    @property
    def timing(self) -> TerminationTiming:
        return TerminationTiming(self.scenario.value.rsplit("_notice_", 1)[0])

    @property
    def has_proper_notice(self) -> bool:
        return self.scenario.value.endswith("_notice_ok")

    @property
    def scenario_label(self) -> str:
        return SCENARIO_LABELS[self.scenario]

    @property
    def is_full_return(self) -> bool:
        return self.final_return == self.deposit_amount

    @property
    def is_full_forfeit(self) -> bool:
        return self.final_return == 0

    def with_ledger(self, ledger: DeductionLedger) -> "SettlementResult":
        """Apply landlord deductions / manual override on top of the recommendation."""
        return replace(
            self,
            ledger_total=ledger.total,
            return_override=ledger.override,
            final_return=ledger.final_return(self.recommended_return, self.deposit_amount),
        )

    def as_dict(self) -> dict:
        return {
            "notice_days": self.notice_days,
            "scenario": self.scenario.value,
            "scenario_label": self.scenario_label,
            "has_proper_notice": self.has_proper_notice,
            "rule_set": self.rule_set.value,
            "deposit_amount": self.deposit_amount,
            "recommended_return": self.recommended_return,
            "deduction_total": self.deduction_total,
            "deduction_reason": self.deduction_reason,
            "ledger_total": self.ledger_total,
            "return_override": self.return_override,
            "final_return": self.final_return,
            "is_full_return": self.is_full_return,
            "is_full_forfeit": self.is_full_forfeit,
        }


def _non_negative(v: Any, *, field_name: str) -> float:
    try:
        x = float(v or 0.0)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if x < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    return round2(x)


def classify_timing(*, contract_end: Optional[date], termination_date: date, request_date: date) -> TerminationTiming:
    """
    Indefinite when there is no fixed end, or the fixed end has already passed
    when the request is made. Otherwise at-end vs early by the move-out date.
    """
    if contract_end is None or contract_end <= request_date:
        return TerminationTiming.INDEFINITE
    if termination_date >= contract_end:
        return TerminationTiming.AT_END
    return TerminationTiming.EARLY


def _scenario(timing: TerminationTiming, notice_ok: bool) -> SettlementScenario:
    return SettlementScenario(f"{timing.value}_notice_{'ok' if notice_ok else 'late'}")


def _standard_withholding(deposit: float, notice_ok: bool) -> tuple[float, str]:
    if notice_ok:
        return 0.0, "No deductions"
    return deposit, "Entire deposit withheld (notice under 30 days)"


def _graduated_withholding(
    *,
    timing: TerminationTiming,
    notice_ok: bool,
    deposit: float,
    rent: float,
) -> tuple[float, str]:
    """
    Legacy rule set, selected explicitly:
      at end of a running contract:  ok -> nothing,      late -> 1 month rent
      early from a running contract: ok -> 1 month rent, late -> whole deposit
      indefinite contract:           ok -> nothing,      late -> 1 month rent
    """
    if timing == TerminationTiming.EARLY:
        if notice_ok:
            return min(rent, deposit), "One month of rent withheld (early move-out with 30+ days notice)"
        return deposit, "Entire deposit withheld (early move-out without proper notice)"
    if notice_ok:
        return 0.0, "No deductions"
    return min(rent, deposit), "One month of rent withheld (notice under 30 days)"


def calculate_settlement(
    *,
    contract_end: Any,
    termination_date: Any,
    request_date: Any,
    deposit_amount: Any,
    rent_amount: Any = 0.0,
    rule_set: DepositRuleSet | str | None = None,
    ledger: Optional[DeductionLedger] = None,
) -> SettlementResult:
    """
    Deposit settlement for a termination.

    notice_days = calendar days from request_date to termination_date
    (negative for a retroactive termination). 30 days or more is proper notice.

    `request_date` is required; callers pass "today" or the persisted
    requested_at of the termination case. rent_amount only matters for the
    graduated rule set.
    """
    end = as_date(contract_end)
    term = require_date(termination_date, field="termination_date")
    req = require_date(request_date, field="request_date")
    deposit = _non_negative(deposit_amount, field_name="deposit_amount")
    rent = _non_negative(rent_amount, field_name="rent_amount")
    rules = DepositRuleSet(rule_set or settings.deposit_rule_set)

    notice_days = whole_days_between(req, term)
    notice_ok = notice_days >= int(settings.notice_threshold_days)
    timing = classify_timing(contract_end=end, termination_date=term, request_date=req)

    if rules == DepositRuleSet.GRADUATED:
        withheld, reason = _graduated_withholding(timing=timing, notice_ok=notice_ok, deposit=deposit, rent=rent)
    else:
        withheld, reason = _standard_withholding(deposit, notice_ok)

    recommended = round2(clamp(0.0, deposit, deposit - withheld))
    result = SettlementResult(
        notice_days=notice_days,
        scenario=_scenario(timing, notice_ok),
        deposit_amount=deposit,
        recommended_return=recommended,
        deduction_total=round2(deposit - recommended),
        deduction_reason=reason,
        final_return=recommended,
        rule_set=rules,
    )
    if ledger is not None:
        result = result.with_ledger(ledger)
    return result


def deposit_rules() -> list[dict[str, str]]:
    threshold = int(settings.notice_threshold_days)
    return [
        {"title": f"Notice of {threshold}+ days", "description": "Full deposit returned", "type": "success"},
        {"title": f"Notice under {threshold} days", "description": "Entire deposit forfeited", "type": "danger"},
    ]


# -----------------------------------------------------------------------------
# Move-out helpers
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Obligations:
    unpaid_bills: float = 0.0
    inventory_damage: float = 0.0
    cleaning_cost: float = 0.0
    other_debts: float = 0.0

    @property
    def total(self) -> float:
        return round2(self.unpaid_bills + self.inventory_damage + self.cleaning_cost + self.other_debts)


@dataclass(frozen=True)
class RefundAssessment:
    refundable_amount: float
    can_refund: bool
    blocking_reasons: list[str] = field(default_factory=list)
    refund_deadline: Optional[date] = None
    late_days: int = 0
    late_fee: float = 0.0

    def as_dict(self) -> dict:
        return {
            "refundable_amount": self.refundable_amount,
            "can_refund": self.can_refund,
            "blocking_reasons": list(self.blocking_reasons),
            "refund_deadline": self.refund_deadline.isoformat() if self.refund_deadline else None,
            "late_days": self.late_days,
            "late_fee": self.late_fee,
        }


def refund_blockers(obligations: Obligations) -> list[str]:
    """The deposit is never used to settle these; each one blocks the refund."""
    out: list[str] = []
    if obligations.unpaid_bills > 0:
        out.append(f"Unpaid bills: {obligations.unpaid_bills:.2f}")
    if obligations.inventory_damage > 0:
        out.append(f"Inventory damage: {obligations.inventory_damage:.2f}")
    if obligations.cleaning_cost > 0:
        out.append(f"Cleaning costs: {obligations.cleaning_cost:.2f}")
    if obligations.other_debts > 0:
        out.append(f"Other debts: {obligations.other_debts:.2f}")
    return out


def refund_deadline(handover: Any) -> Optional[date]:
    d = as_date(handover)
    if d is None:
        return None
    return d + timedelta(days=int(settings.deposit_refund_deadline_days))


def late_move_out_fee(planned: Any, actual: Any, *, daily_fee: Optional[float] = None) -> tuple[int, float]:
    """Charged separately from the deposit."""
    p = as_date(planned)
    a = as_date(actual)
    if p is None or a is None:
        return 0, 0.0
    late_days = max(0, (a - p).days)
    fee = float(settings.daily_late_fee if daily_fee is None else daily_fee)
    return late_days, round2(late_days * fee)


def assess_refund(
    settlement: SettlementResult,
    *,
    obligations: Obligations = Obligations(),
    planned_move_out: Any = None,
    actual_move_out: Any = None,
    inspection_date: Any = None,
) -> RefundAssessment:
    blockers = refund_blockers(obligations)
    can_refund = not blockers and settlement.final_return > 0
    late_days, late_fee = late_move_out_fee(planned_move_out, actual_move_out)
    deadline = refund_deadline(inspection_date or actual_move_out) if can_refund else None
    return RefundAssessment(
        refundable_amount=settlement.final_return,
        can_refund=can_refund,
        blocking_reasons=blockers,
        refund_deadline=deadline,
        late_days=late_days,
        late_fee=late_fee,
    )


def validate_move_out_date(
    move_out: Any,
    *,
    today: Any,
    contract_end: Any = None,
    allow_after_contract_end: bool = True,
) -> date:
    """Raises ValidationError; returns the parsed date when acceptable."""
    d = require_date(move_out, field="termination_date")
    t = require_date(today, field="today")
    if d < t:
        raise ValidationError("termination date cannot be before today")
    end = as_date(contract_end)
    if not allow_after_contract_end and end is not None and d > end:
        raise ValidationError("termination date cannot be after the contract end date")
    return d
