# tenancy/services/notifier.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.settlement import SettlementResult
from ..models import Notification

log = logging.getLogger(__name__)


class NotificationKind:
    CONTRACT_EXPIRING = "contract_expiring"
    AUTO_RENEWAL = "auto_renewal"
    TERMINATION_REQUESTED = "contract_termination_requested"
    TERMINATION_INITIATED = "contract_termination_initiated"
    TERMINATION_CONFIRMED = "contract_termination_confirmed"
    TERMINATION_REJECTED = "contract_termination_rejected"
    TERMINATED = "contract_terminated"


class Notifier(Protocol):
    def notify(self, user_id: str, kind: str, title: str, body: str, data: dict[str, Any]) -> None: ...


@dataclass(frozen=True)
class Message:
    kind: str
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)


# -----------------------------------------------------------------------------
# Message catalogue
# -----------------------------------------------------------------------------


def _fmt_date(d: Optional[date]) -> str:
    return d.isoformat() if d else "-"


def _money(x: float) -> str:
    return f"{x:,.2f}"


def _deposit_sentence(s: Optional[SettlementResult]) -> str:
    if s is None:
        return ""
    return f" Deposit to be returned: {_money(s.final_return)} ({s.scenario_label})."


def _deposit_data(s: Optional[SettlementResult]) -> dict[str, Any]:
    if s is None:
        return {}
    return {
        "deposit_return": s.final_return,
        "deposit_deduction": round(s.deposit_amount - s.final_return, 2),
        "scenario": s.scenario.value,
    }


def termination_requested(
    *,
    lease_id: int,
    tenant_name: Optional[str],
    termination_date: date,
    reason: Optional[str],
    settlement: Optional[SettlementResult],
) -> Message:
    who = tenant_name or "The tenant"
    body = f"{who} asked to end the lease on {_fmt_date(termination_date)}."
    if reason:
        body += f" Reason: {reason}"
    body += _deposit_sentence(settlement)
    return Message(
        kind=NotificationKind.TERMINATION_REQUESTED,
        title="Lease termination requested",
        body=body,
        data={"lease_id": lease_id, "termination_date": _fmt_date(termination_date), **_deposit_data(settlement)},
    )


def termination_initiated(
    *,
    lease_id: int,
    termination_date: date,
    reason: Optional[str],
    settlement: Optional[SettlementResult],
) -> Message:
    body = f"Your landlord is ending the lease. Move-out date: {_fmt_date(termination_date)}."
    if reason:
        body += f" Reason: {reason}"
    body += _deposit_sentence(settlement)
    return Message(
        kind=NotificationKind.TERMINATION_INITIATED,
        title="Landlord ended the lease",
        body=body,
        data={"lease_id": lease_id, "termination_date": _fmt_date(termination_date), **_deposit_data(settlement)},
    )


def termination_confirmed(*, lease_id: int, termination_date: date, settlement: Optional[SettlementResult]) -> Message:
    return Message(
        kind=NotificationKind.TERMINATION_CONFIRMED,
        title="Lease termination confirmed",
        body=(
            "Your landlord confirmed your request to end the lease. "
            f"Move-out date: {_fmt_date(termination_date)}.{_deposit_sentence(settlement)}"
        ),
        data={"lease_id": lease_id, **_deposit_data(settlement)},
    )


def termination_rejected(*, lease_id: int) -> Message:
    return Message(
        kind=NotificationKind.TERMINATION_REJECTED,
        title="Termination request rejected",
        body=(
            "Your landlord rejected your request to end the lease. "
            "You can submit a new request or contact your landlord."
        ),
        data={"lease_id": lease_id},
    )


def terminated(*, lease_id: int, termination_date: date) -> Message:
    return Message(
        kind=NotificationKind.TERMINATED,
        title="Lease terminated",
        body=f"The lease has been terminated. Move-out date: {_fmt_date(termination_date)}.",
        data={"lease_id": lease_id, "termination_date": _fmt_date(termination_date)},
    )


def contract_expiring(*, lease_id: int, contract_end: Optional[date], days_left: Optional[int]) -> Message:
    return Message(
        kind=NotificationKind.CONTRACT_EXPIRING,
        title="Your lease is ending soon",
        body=(
            f"Your lease ends on {_fmt_date(contract_end)} ({days_left} days left). "
            "Let your landlord know whether you want to renew. "
            "Without an answer the lease renews automatically."
        ),
        data={"lease_id": lease_id, "contract_end": _fmt_date(contract_end), "days_left": days_left},
    )


def auto_renewal(*, lease_id: int, new_end: date, months: int) -> Message:
    return Message(
        kind=NotificationKind.AUTO_RENEWAL,
        title="Lease renewed",
        body=f"The lease was extended by {months} months. New end date: {_fmt_date(new_end)}.",
        data={"lease_id": lease_id, "contract_end": _fmt_date(new_end), "months": months},
    )


# -----------------------------------------------------------------------------
# Delivery
# -----------------------------------------------------------------------------


def send(notifier: Notifier, user_id: Optional[str], msg: Message) -> bool:
    """
    Best-effort delivery. A missing recipient or a failing notifier is logged;
    the caller's persisted change always stands.
    """
    if not user_id:
        log.info("notification_skipped_no_recipient", extra={"kind": msg.kind})
        return False
    try:
        notifier.notify(user_id, msg.kind, msg.title, msg.body, msg.data)
        return True
    except Exception:
        log.exception("notification_failed", extra={"kind": msg.kind, "user_id": user_id})
        return False


class DbNotifier:
    """Writes rows to the notifications outbox table, one commit per message."""

    def __init__(self, db: Session, *, clock=datetime.utcnow):
        self.db = db
        self.clock = clock

    def notify(self, user_id: str, kind: str, title: str, body: str, data: dict[str, Any]) -> None:
        row = Notification(
            user_id=str(user_id),
            kind=kind,
            title=title,
            body=body,
            data_json=json.dumps(data or {}, sort_keys=True, default=str),
            created_at=self.clock(),
        )
        try:
            self.db.add(row)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise


class LoggingNotifier:
    def notify(self, user_id: str, kind: str, title: str, body: str, data: dict[str, Any]) -> None:
        log.info("notification", extra={"user_id": user_id, "kind": kind, "title": title})
