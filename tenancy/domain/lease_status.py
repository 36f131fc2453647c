# tenancy/domain/lease_status.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Optional

from ..config import settings
from .dates import as_date, months_between, require_date
from .lease import LeaseRecord, OccupancyStatus, TenantResponse, parse_occupancy, parse_response


class LeasePhase(str, Enum):
    VACANT = "vacant"
    MAINTENANCE = "maintenance"
    ACTIVE = "active"
    ACTIVE_NOT_RENEWING = "active_not_renewing"
    RENEWED = "renewed"
    INDEFINITE = "indefinite"
    EXPIRED = "expired"
    EXPIRED_AUTO_RENEWING = "expired_auto_renewing"
    EXPIRING_WITHIN_MONTH = "expiring_within_month"
    EXPIRING_WITHIN_TWO_MONTHS = "expiring_within_two_months"


PHASE_LABELS: dict[LeasePhase, str] = {
    LeasePhase.VACANT: "Vacant",
    LeasePhase.MAINTENANCE: "Under maintenance",
    LeasePhase.ACTIVE: "Active",
    LeasePhase.ACTIVE_NOT_RENEWING: "Active - tenant does not want to renew",
    LeasePhase.RENEWED: "Renewed",
    LeasePhase.INDEFINITE: "Active - no fixed end date",
    LeasePhase.EXPIRED: "Contract ended",
    LeasePhase.EXPIRED_AUTO_RENEWING: "Contract ended - renewing automatically",
    LeasePhase.EXPIRING_WITHIN_MONTH: "Ends within a month - renewing automatically",
    LeasePhase.EXPIRING_WITHIN_TWO_MONTHS: "Ends within two months - tenant decision needed",
}


@dataclass(frozen=True)
class LeaseStatus:
    phase: LeasePhase
    days_left: Optional[int]
    urgent: bool = False
    should_notify: bool = False
    should_auto_renew: bool = False
    notification_kind: Optional[str] = None
    renewal_months: Optional[int] = None
    is_long_term: bool = False
    auto_renewal_applied: bool = False

    @property
    def label(self) -> str:
        base = PHASE_LABELS[self.phase]
        if self.phase in (LeasePhase.EXPIRING_WITHIN_MONTH, LeasePhase.EXPIRING_WITHIN_TWO_MONTHS):
            return f"{base} ({self.days_left} days left)"
        return base

    @property
    def renewal_due(self) -> bool:
        return self.should_auto_renew and not self.auto_renewal_applied

    def as_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "label": self.label,
            "days_left": self.days_left,
            "urgent": self.urgent,
            "should_notify": self.should_notify,
            "should_auto_renew": self.should_auto_renew,
            "renewal_due": self.renewal_due,
            "notification_kind": self.notification_kind,
            "renewal_months": self.renewal_months,
            "is_long_term": self.is_long_term,
            "auto_renewal_applied": self.auto_renewal_applied,
        }


def project_lease_status(
    *,
    today: Any,
    contract_start: Any,
    contract_end: Any,
    tenant_response: Any = None,
    occupancy_status: Any = OccupancyStatus.OCCUPIED,
    auto_renewal_applied: bool = False,
) -> LeaseStatus:
    """
    Classify a lease into its lifecycle phase.

    Rules, first match wins:
      1. vacant / maintenance units: nothing is due
      2. tenant said no: active, not renewing
      3. tenant said yes: renewed (12-month renewal)
      4. long-term contract (> 12 months): only active / renewed / expired,
         auto-renewal and renewal notices are suppressed
      5. short-term contract, by days left until contract_end:
           < 0     expired, renewing automatically (6 months)
           0..31   expiring within a month, renewing automatically
           32..60  expiring within two months, tenant decision requested
           > 60    active

    `today` is always supplied by the caller.
    """
    t = require_date(today, field="today")
    start = as_date(contract_start)
    end = as_date(contract_end)
    occ = parse_occupancy(occupancy_status)
    resp = parse_response(tenant_response)
    applied = bool(auto_renewal_applied)

    days_left = (end - t).days if end is not None else None

    if occ == OccupancyStatus.VACANT:
        return LeaseStatus(phase=LeasePhase.VACANT, days_left=None, auto_renewal_applied=applied)
    if occ == OccupancyStatus.MAINTENANCE:
        return LeaseStatus(phase=LeasePhase.MAINTENANCE, days_left=None, auto_renewal_applied=applied)

    if resp == TenantResponse.DOES_NOT_WANT_TO_RENEW:
        return LeaseStatus(phase=LeasePhase.ACTIVE_NOT_RENEWING, days_left=days_left, auto_renewal_applied=applied)

    if resp == TenantResponse.WANTS_TO_RENEW:
        return LeaseStatus(
            phase=LeasePhase.RENEWED,
            days_left=days_left,
            should_auto_renew=True,
            notification_kind="auto_renewal",
            renewal_months=int(settings.explicit_renewal_months),
            auto_renewal_applied=applied,
        )

    if end is None:
        return LeaseStatus(phase=LeasePhase.INDEFINITE, days_left=None, auto_renewal_applied=applied)

    long_term_limit = int(settings.long_term_contract_months)
    if start is not None and months_between(start, end) > long_term_limit:
        if days_left < 0:
            return LeaseStatus(
                phase=LeasePhase.EXPIRED,
                days_left=days_left,
                urgent=True,
                notification_kind="landlord_notification",
                is_long_term=True,
                auto_renewal_applied=applied,
            )
        rolled_over = months_between(start, t) > long_term_limit
        return LeaseStatus(
            phase=LeasePhase.RENEWED if rolled_over else LeasePhase.ACTIVE,
            days_left=days_left,
            is_long_term=True,
            auto_renewal_applied=applied,
        )

    # Short-term contract, nobody has answered yet.
    if days_left < 0:
        return LeaseStatus(
            phase=LeasePhase.EXPIRED_AUTO_RENEWING,
            days_left=days_left,
            should_auto_renew=True,
            notification_kind="auto_renewal",
            renewal_months=int(settings.auto_renewal_months),
            auto_renewal_applied=applied,
        )
    if days_left <= int(settings.expiring_soon_days):
        return LeaseStatus(
            phase=LeasePhase.EXPIRING_WITHIN_MONTH,
            days_left=days_left,
            should_auto_renew=True,
            notification_kind="auto_renewal",
            renewal_months=int(settings.auto_renewal_months),
            auto_renewal_applied=applied,
        )
    if days_left <= int(settings.renewal_notice_days):
        return LeaseStatus(
            phase=LeasePhase.EXPIRING_WITHIN_TWO_MONTHS,
            days_left=days_left,
            urgent=True,
            should_notify=True,
            notification_kind="contract_expiring",
            auto_renewal_applied=applied,
        )
    return LeaseStatus(phase=LeasePhase.ACTIVE, days_left=days_left, auto_renewal_applied=applied)


def lease_status(lease: LeaseRecord, *, today: date) -> LeaseStatus:
    return project_lease_status(
        today=today,
        contract_start=lease.contract_start,
        contract_end=lease.contract_end,
        tenant_response=lease.tenant_response,
        occupancy_status=lease.occupancy_status,
        auto_renewal_applied=lease.auto_renewal_applied,
    )
