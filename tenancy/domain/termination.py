# tenancy/domain/termination.py
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from .dates import as_date
from .deductions import Deduction, DeductionLedger
from .errors import IllegalTransition

# -----------------------------------------------------------------------------
# Termination case (tagged variant)
# -----------------------------------------------------------------------------
# One frozen payload class per state. "No case" is None. The store persists
# these as flat nullable columns; to_columns/from_columns are the only bridge,
# so a half-filled combination (e.g. confirmed_at without a status) can never
# reach the workflow.
# -----------------------------------------------------------------------------


class TerminationStatus(str, Enum):
    TENANT_REQUESTED = "tenant_requested"
    LANDLORD_REQUESTED = "landlord_requested"
    CONFIRMED = "confirmed"
    TERMINATED = "terminated"


class Party(str, Enum):
    TENANT = "tenant"
    LANDLORD = "landlord"


class Action(str, Enum):
    REQUEST = "request"
    INITIATE = "initiate"
    CONFIRM = "confirm"
    REJECT = "reject"
    CANCEL = "cancel"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Actor:
    party: Party
    user_id: Optional[str] = None


@dataclass(frozen=True)
class TenantRequested:
    status: ClassVar[TerminationStatus] = TerminationStatus.TENANT_REQUESTED

    termination_date: date
    requested_at: datetime
    requested_by: Optional[str] = None
    reason: Optional[str] = None
    deductions: tuple[Deduction, ...] = ()
    return_override: Optional[float] = None


@dataclass(frozen=True)
class LandlordRequested:
    status: ClassVar[TerminationStatus] = TerminationStatus.LANDLORD_REQUESTED

    termination_date: date
    requested_at: datetime
    requested_by: Optional[str] = None
    reason: Optional[str] = None
    deductions: tuple[Deduction, ...] = ()
    return_override: Optional[float] = None


@dataclass(frozen=True)
class Confirmed:
    status: ClassVar[TerminationStatus] = TerminationStatus.CONFIRMED

    termination_date: date
    requested_at: datetime
    confirmed_at: datetime
    requested_by: Optional[str] = None
    reason: Optional[str] = None
    deductions: tuple[Deduction, ...] = ()
    return_override: Optional[float] = None


@dataclass(frozen=True)
class Terminated:
    status: ClassVar[TerminationStatus] = TerminationStatus.TERMINATED

    termination_date: date
    requested_at: datetime
    terminated_at: datetime
    confirmed_at: Optional[datetime] = None
    requested_by: Optional[str] = None
    reason: Optional[str] = None
    deductions: tuple[Deduction, ...] = ()
    return_override: Optional[float] = None


TerminationCase = Union[TenantRequested, LandlordRequested, Confirmed, Terminated]

# States that carry a financial consequence worth showing.
SETTLEMENT_STATES = {
    TerminationStatus.TENANT_REQUESTED,
    TerminationStatus.LANDLORD_REQUESTED,
    TerminationStatus.CONFIRMED,
}

# (from_status, action) -> (actor, to_status). None on the right means "cleared".
TRANSITIONS: dict[tuple[Optional[TerminationStatus], Action], tuple[Party, Optional[TerminationStatus]]] = {
    (None, Action.REQUEST): (Party.TENANT, TerminationStatus.TENANT_REQUESTED),
    (None, Action.INITIATE): (Party.LANDLORD, TerminationStatus.LANDLORD_REQUESTED),
    (TerminationStatus.TENANT_REQUESTED, Action.CONFIRM): (Party.LANDLORD, TerminationStatus.CONFIRMED),
    (TerminationStatus.TENANT_REQUESTED, Action.REJECT): (Party.LANDLORD, None),
    (TerminationStatus.TENANT_REQUESTED, Action.CANCEL): (Party.TENANT, None),
    (TerminationStatus.LANDLORD_REQUESTED, Action.CANCEL): (Party.LANDLORD, None),
    (TerminationStatus.LANDLORD_REQUESTED, Action.COMPLETE): (Party.LANDLORD, TerminationStatus.TERMINATED),
    (TerminationStatus.CONFIRMED, Action.COMPLETE): (Party.LANDLORD, TerminationStatus.TERMINATED),
}


def status_of(case: Optional[TerminationCase]) -> Optional[TerminationStatus]:
    return None if case is None else case.status


def _state_name(status: Optional[TerminationStatus]) -> str:
    return status.value if status is not None else "none"


def check_transition(
    case: Optional[TerminationCase],
    action: Action,
    party: Party,
) -> Optional[TerminationStatus]:
    """
    Returns the target status (None = cleared) or raises IllegalTransition.
    Re-submitting the action that produced the current state is illegal too.
    """
    cur = status_of(case)
    rule = TRANSITIONS.get((cur, Action(action)))
    if rule is None:
        raise IllegalTransition(
            f"cannot {Action(action).value} a termination in state {_state_name(cur)}",
            state=_state_name(cur),
            action=Action(action).value,
        )
    actor, target = rule
    if Party(party) != actor:
        raise IllegalTransition(
            f"only the {actor.value} can {Action(action).value} from state {_state_name(cur)}",
            state=_state_name(cur),
            action=Action(action).value,
        )
    return target


def allowed_actions(case: Optional[TerminationCase], party: Optional[Party] = None) -> list[Action]:
    cur = status_of(case)
    out: list[Action] = []
    for (frm, action), (actor, _to) in TRANSITIONS.items():
        if frm != cur:
            continue
        if party is not None and Party(party) != actor:
            continue
        out.append(action)
    return out


def is_open(case: Optional[TerminationCase]) -> bool:
    return case is not None and case.status != TerminationStatus.TERMINATED


def ledger_of(case: Optional[TerminationCase]) -> DeductionLedger:
    items = getattr(case, "deductions", ()) or ()
    return DeductionLedger(items, override=getattr(case, "return_override", None))


# -----------------------------------------------------------------------------
# Flat column bridge (used by the contract store)
# -----------------------------------------------------------------------------

COLUMN_NAMES = (
    "termination_status",
    "termination_date",
    "termination_reason",
    "termination_requested_at",
    "termination_confirmed_at",
    "termination_requested_by",
    "termination_completed_at",
    "termination_deductions_json",
    "termination_return_override",
)


def cleared_columns() -> dict[str, Any]:
    return {k: None for k in COLUMN_NAMES}


def _dumps_deductions(items: tuple[Deduction, ...]) -> Optional[str]:
    if not items:
        return None
    return json.dumps([i.as_dict() for i in items], separators=(",", ":"))


def _loads_deductions(s: Optional[str]) -> tuple[Deduction, ...]:
    if not s:
        return ()
    raw = json.loads(s)
    if not isinstance(raw, list):
        return ()
    return tuple(Deduction.from_dict(x) for x in raw if isinstance(x, dict))


def to_columns(case: Optional[TerminationCase]) -> dict[str, Any]:
    cols = cleared_columns()
    if case is None:
        return cols

    cols["termination_status"] = case.status.value
    cols["termination_date"] = case.termination_date
    cols["termination_reason"] = case.reason
    cols["termination_requested_at"] = case.requested_at
    cols["termination_requested_by"] = case.requested_by
    cols["termination_confirmed_at"] = getattr(case, "confirmed_at", None)
    cols["termination_completed_at"] = getattr(case, "terminated_at", None)
    cols["termination_deductions_json"] = _dumps_deductions(getattr(case, "deductions", ()))
    cols["termination_return_override"] = getattr(case, "return_override", None)
    return cols


def from_columns(row: Any) -> Optional[TerminationCase]:
    """
    Build the variant from anything exposing the termination_* attributes
    (ORM row, dict-like namespace). Unknown or incomplete rows read as None.
    """
    raw = getattr(row, "termination_status", None)
    if not raw:
        return None
    try:
        status = TerminationStatus(str(raw))
    except ValueError:
        return None

    term_date = as_date(getattr(row, "termination_date", None))
    requested_at = getattr(row, "termination_requested_at", None)
    if term_date is None or requested_at is None:
        return None

    common = dict(
        termination_date=term_date,
        requested_at=requested_at,
        requested_by=getattr(row, "termination_requested_by", None),
        reason=getattr(row, "termination_reason", None),
    )
    deductions = _loads_deductions(getattr(row, "termination_deductions_json", None))
    override = getattr(row, "termination_return_override", None)
    override = float(override) if override is not None else None

    if status == TerminationStatus.TENANT_REQUESTED:
        return TenantRequested(**common, deductions=deductions, return_override=override)
    if status == TerminationStatus.LANDLORD_REQUESTED:
        return LandlordRequested(**common, deductions=deductions, return_override=override)

    confirmed_at = getattr(row, "termination_confirmed_at", None)
    if status == TerminationStatus.CONFIRMED:
        if confirmed_at is None:
            return None
        return Confirmed(**common, confirmed_at=confirmed_at, deductions=deductions, return_override=override)

    terminated_at = getattr(row, "termination_completed_at", None) or confirmed_at
    if terminated_at is None:
        return None
    return Terminated(
        **common,
        terminated_at=terminated_at,
        confirmed_at=confirmed_at,
        deductions=deductions,
        return_override=override,
    )
