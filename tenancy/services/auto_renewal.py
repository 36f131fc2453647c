# tenancy/services/auto_renewal.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ..config import settings
from ..domain.dates import add_months, require_date
from ..domain.errors import CollaboratorError
from ..domain.lease import LeaseRecord, TenantResponse
from ..domain.lease_status import LeasePhase, LeaseStatus, lease_status
from ..domain.termination import is_open
from . import notifier as messages
from .contract_store import ContractStore
from .notifier import Notifier, send

log = logging.getLogger(__name__)


@dataclass
class RenewalSweepResult:
    today: date
    renewed: list[int] = field(default_factory=list)
    notified: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "today": self.today.isoformat(),
            "renewed": list(self.renewed),
            "notified": list(self.notified),
            "skipped": len(self.skipped),
            "failed": list(self.failed),
        }


def renewal_patch(lease: LeaseRecord, status: LeaseStatus, *, today: date) -> dict[str, Any]:
    """Contract columns to write when `status.renewal_due`."""
    months = int(status.renewal_months or settings.auto_renewal_months)
    patch: dict[str, Any] = {
        "contract_end": add_months(lease.contract_end, months),
        "auto_renewal_applied": True,
    }
    # nobody answered: record the implied "yes" so the next projection reads RENEWED
    if status.phase != LeasePhase.RENEWED and settings.auto_renewal_marks_response:
        patch["tenant_response"] = TenantResponse.WANTS_TO_RENEW
        patch["tenant_response_date"] = today
    return patch


class AutoRenewalScheduler:
    """
    Periodic pass over occupied leases.

    - renewal due (projector says auto-renew, not applied yet): extend
      contract_end by 6 or 12 months and set auto_renewal_applied
    - tenant decision needed: send one contract_expiring reminder
    - a termination case is open: leave the contract alone, the agreed
      move-out date stands

    `auto_renewal_applied` is the only idempotence guard; running twice for
    the same day extends nothing the second time. A failing lease is logged
    and counted, the sweep continues.
    """

    def __init__(self, store: ContractStore, notifier: Notifier, *, dry_run: bool = False):
        self.store = store
        self.notifier = notifier
        self.dry_run = dry_run

    def run(self, today: Any) -> RenewalSweepResult:
        t = require_date(today, field="today")
        out = RenewalSweepResult(today=t)

        for lease in self.store.list_leases_for_renewal():
            if is_open(lease.termination):
                out.skipped.append(lease.id)
                continue
            status = lease_status(lease, today=t)
            try:
                if status.renewal_due and lease.contract_end is not None:
                    self._renew(lease, status, today=t)
                    out.renewed.append(lease.id)
                elif status.should_notify:
                    if not self.dry_run:
                        send(
                            self.notifier,
                            lease.tenant_user_id,
                            messages.contract_expiring(
                                lease_id=lease.id,
                                contract_end=lease.contract_end,
                                days_left=status.days_left,
                            ),
                        )
                    out.notified.append(lease.id)
                else:
                    out.skipped.append(lease.id)
            except CollaboratorError:
                log.exception("auto_renewal_failed", extra={"lease_id": lease.id})
                out.failed.append(lease.id)

        log.info(
            "auto_renewal_sweep",
            extra={
                "today": t.isoformat(),
                "renewed": len(out.renewed),
                "notified": len(out.notified),
                "skipped": len(out.skipped),
                "failed": len(out.failed),
                "dry_run": self.dry_run,
            },
        )
        return out

    def _renew(self, lease: LeaseRecord, status: LeaseStatus, *, today: date) -> None:
        patch = renewal_patch(lease, status, today=today)
        if self.dry_run:
            return

        after = self.store.update_contract(
            lease.id,
            patch,
            expected_version=lease.version,
            actor=None,
            action="lease.auto_renewal",
        )
        log.info(
            "lease_auto_renewed",
            extra={
                "lease_id": lease.id,
                "phase": status.phase.value,
                "months": status.renewal_months,
                "contract_end": after.contract_end.isoformat() if after.contract_end else None,
            },
        )
        msg = messages.auto_renewal(
            lease_id=lease.id,
            new_end=after.contract_end,
            months=int(status.renewal_months or settings.auto_renewal_months),
        )
        send(self.notifier, lease.tenant_user_id, msg)
        send(self.notifier, lease.landlord_user_id, msg)
