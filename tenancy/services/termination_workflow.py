# tenancy/services/termination_workflow.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Iterable, Optional

from ..domain.dates import as_date, require_date
from ..domain.deductions import Deduction, DeductionLedger
from ..domain.errors import IllegalTransition, ValidationError
from ..domain.lease import LeaseRecord
from ..domain.settlement import (
    DepositRuleSet,
    Obligations,
    RefundAssessment,
    SettlementResult,
    assess_refund,
    calculate_settlement,
    validate_move_out_date,
)
from ..domain.termination import (
    SETTLEMENT_STATES,
    Action,
    Actor,
    Confirmed,
    LandlordRequested,
    Party,
    TenantRequested,
    Terminated,
    TerminationCase,
    TerminationStatus,
    allowed_actions,
    check_transition,
    ledger_of,
    status_of,
)
from . import notifier as messages
from .contract_store import ContractStore, vacated_occupancy
from .notifier import Notifier, send

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    lease: LeaseRecord
    action: Optional[Action]
    from_status: Optional[TerminationStatus]
    to_status: Optional[TerminationStatus]
    settlement: Optional[SettlementResult] = None
    notified: bool = False

    def as_dict(self) -> dict:
        return {
            "lease_id": self.lease.id,
            "action": self.action.value if self.action else None,
            "from_status": self.from_status.value if self.from_status else None,
            "to_status": self.to_status.value if self.to_status else None,
            "version": self.lease.version,
            "settlement": self.settlement.as_dict() if self.settlement else None,
            "notified": self.notified,
        }


def _ledger_from_input(items: Iterable[Any]) -> DeductionLedger:
    ledger = DeductionLedger()
    for it in items or ():
        if isinstance(it, Deduction):
            ledger.append(it.reason, it.amount)
        elif isinstance(it, dict):
            ledger.append(it.get("reason") or "", it.get("amount"))
        else:
            raise ValidationError(f"bad deduction item: {it!r}")
    return ledger


def _apply_override(ledger: DeductionLedger, override: Any, deposit: float) -> DeductionLedger:
    if override is not None:
        ledger.set_override(override, deposit_amount=deposit)
    return ledger


def settlement_for(
    lease: LeaseRecord,
    case: Optional[TerminationCase],
    *,
    rule_set: DepositRuleSet | str | None = None,
) -> Optional[SettlementResult]:
    """Live recomputation anchored at the persisted request timestamp."""
    if case is None:
        return None
    return calculate_settlement(
        contract_end=lease.contract_end,
        termination_date=case.termination_date,
        request_date=case.requested_at,
        deposit_amount=lease.deposit_amount,
        rent_amount=lease.rent_amount,
        rule_set=rule_set,
        ledger=ledger_of(case),
    )


class TerminationWorkflow:
    """
    Drives the termination case of one lease through its legal transitions.

    Order inside every action: validate input, read lease, check the
    transition, persist (version-guarded), notify. Anything raised before the
    persist step leaves the lease untouched. Notifier failures are logged and
    never undo a persisted change.
    """

    def __init__(
        self,
        store: ContractStore,
        notifier: Notifier,
        *,
        clock: Callable[[], datetime] = datetime.utcnow,
        rule_set: DepositRuleSet | str | None = None,
    ):
        self.store = store
        self.notifier = notifier
        self.clock = clock
        self.rule_set = rule_set

    # ---- helpers ----

    def _today(self, today: Any) -> date:
        return as_date(today) or self.clock().date()

    def _settlement(self, lease: LeaseRecord) -> Optional[SettlementResult]:
        return settlement_for(lease, lease.termination, rule_set=self.rule_set)

    def _log(self, lease_id: int, actor: Actor, action: Action, frm, to) -> None:
        log.info(
            "termination_transition",
            extra={
                "lease_id": lease_id,
                "actor": actor.user_id,
                "party": actor.party.value,
                "action": action.value,
                "from_state": frm.value if frm else None,
                "to_state": to.value if to else None,
            },
        )

    def _persist(
        self,
        lease: LeaseRecord,
        case: Optional[TerminationCase],
        *,
        actor: Actor,
        action: Action,
        occupancy: Optional[dict[str, Any]] = None,
    ) -> LeaseRecord:
        return self.store.update_termination_case(
            lease.id,
            case,
            expected_version=lease.version,
            occupancy=occupancy,
            actor=actor.user_id,
            action=f"lease.termination.{action.value}",
        )

    def _result(
        self,
        before: LeaseRecord,
        after: LeaseRecord,
        *,
        actor: Actor,
        action: Action,
        notified: bool,
    ) -> TransitionResult:
        frm = status_of(before.termination)
        to = status_of(after.termination)
        self._log(after.id, actor, action, frm, to)
        return TransitionResult(
            lease=after,
            action=action,
            from_status=frm,
            to_status=to,
            settlement=self._settlement(after),
            notified=notified,
        )

    # ---- queries ----

    def settlement(
        self,
        lease_id: int,
        *,
        today: Any = None,
        termination_date: Any = None,
    ) -> Optional[SettlementResult]:
        """
        Current settlement for the lease's case. Without a case, a preview is
        computed when `termination_date` is given (notice counted from today).
        """
        lease = self.store.read_lease(lease_id)
        if lease.termination is not None:
            return self._settlement(lease)
        if termination_date is None:
            return None
        return calculate_settlement(
            contract_end=lease.contract_end,
            termination_date=require_date(termination_date, field="termination_date"),
            request_date=self._today(today),
            deposit_amount=lease.deposit_amount,
            rent_amount=lease.rent_amount,
            rule_set=self.rule_set,
        )

    def allowed_actions(self, lease_id: int, party: Party | None = None) -> list[Action]:
        return allowed_actions(self.store.read_lease(lease_id).termination, party)

    def refund(
        self,
        lease_id: int,
        *,
        obligations: Obligations = Obligations(),
        actual_move_out: Any = None,
        inspection_date: Any = None,
    ) -> Optional[RefundAssessment]:
        """
        Whether the settled amount can be paid out, by when, and any late
        move-out fee owed on top. None while there is no case.
        """
        lease = self.store.read_lease(lease_id)
        settlement = self._settlement(lease)
        if settlement is None:
            return None
        return assess_refund(
            settlement,
            obligations=obligations,
            planned_move_out=lease.termination.termination_date,
            actual_move_out=actual_move_out,
            inspection_date=inspection_date,
        )

    # ---- transitions ----

    def request(
        self,
        lease_id: int,
        *,
        actor: Actor,
        termination_date: Any,
        reason: Optional[str] = None,
        allow_after_contract_end: bool = True,
    ) -> TransitionResult:
        """
        Tenant asks to end the lease. The landlord is notified. The move-out
        date is checked against the same instant that is stored as requested_at.
        """
        now = self.clock()
        t = now.date()
        move_out = validate_move_out_date(termination_date, today=t)

        lease = self.store.read_lease(lease_id)
        check_transition(lease.termination, Action.REQUEST, actor.party)
        validate_move_out_date(
            move_out,
            today=t,
            contract_end=lease.contract_end,
            allow_after_contract_end=allow_after_contract_end,
        )

        case = TenantRequested(
            termination_date=move_out,
            requested_at=now,
            requested_by=actor.user_id,
            reason=(reason or "").strip() or None,
        )
        after = self._persist(lease, case, actor=actor, action=Action.REQUEST)
        settlement = self._settlement(after)
        notified = send(
            self.notifier,
            after.landlord_user_id,
            messages.termination_requested(
                lease_id=after.id,
                tenant_name=after.tenant_name,
                termination_date=move_out,
                reason=case.reason,
                settlement=settlement,
            ),
        )
        return self._result(lease, after, actor=actor, action=Action.REQUEST, notified=notified)

    def initiate(
        self,
        lease_id: int,
        *,
        actor: Actor,
        termination_date: Any,
        reason: Optional[str] = None,
        deductions: Iterable[Any] = (),
        return_override: Any = None,
        allow_after_contract_end: bool = True,
    ) -> TransitionResult:
        """Landlord ends the lease, optionally with a drafted deduction ledger."""
        now = self.clock()
        t = now.date()
        move_out = validate_move_out_date(termination_date, today=t)
        ledger = _ledger_from_input(deductions)

        lease = self.store.read_lease(lease_id)
        check_transition(lease.termination, Action.INITIATE, actor.party)
        validate_move_out_date(
            move_out,
            today=t,
            contract_end=lease.contract_end,
            allow_after_contract_end=allow_after_contract_end,
        )
        _apply_override(ledger, return_override, lease.deposit_amount)

        case = LandlordRequested(
            termination_date=move_out,
            requested_at=now,
            requested_by=actor.user_id,
            reason=(reason or "").strip() or None,
            deductions=ledger.effective_items(),
            return_override=ledger.override,
        )
        after = self._persist(lease, case, actor=actor, action=Action.INITIATE)
        settlement = self._settlement(after)
        notified = send(
            self.notifier,
            after.tenant_user_id,
            messages.termination_initiated(
                lease_id=after.id,
                termination_date=move_out,
                reason=case.reason,
                settlement=settlement,
            ),
        )
        return self._result(lease, after, actor=actor, action=Action.INITIATE, notified=notified)

    def confirm(
        self,
        lease_id: int,
        *,
        actor: Actor,
        deductions: Optional[Iterable[Any]] = None,
        return_override: Any = None,
    ) -> TransitionResult:
        """
        Landlord accepts the tenant's request. When `deductions` is None the
        ledger drafted so far is kept as is.
        """
        new_ledger = None if deductions is None else _ledger_from_input(deductions)

        lease = self.store.read_lease(lease_id)
        check_transition(lease.termination, Action.CONFIRM, actor.party)
        cur: TenantRequested = lease.termination  # type: ignore[assignment]

        ledger = new_ledger if new_ledger is not None else ledger_of(cur)
        if return_override is not None:
            _apply_override(ledger, return_override, lease.deposit_amount)

        case = Confirmed(
            termination_date=cur.termination_date,
            requested_at=cur.requested_at,
            confirmed_at=self.clock(),
            requested_by=cur.requested_by,
            reason=cur.reason,
            deductions=ledger.effective_items(),
            return_override=ledger.override,
        )
        after = self._persist(lease, case, actor=actor, action=Action.CONFIRM)
        notified = send(
            self.notifier,
            after.tenant_user_id,
            messages.termination_confirmed(
                lease_id=after.id,
                termination_date=case.termination_date,
                settlement=self._settlement(after),
            ),
        )
        return self._result(lease, after, actor=actor, action=Action.CONFIRM, notified=notified)

    def reject(self, lease_id: int, *, actor: Actor) -> TransitionResult:
        lease = self.store.read_lease(lease_id)
        check_transition(lease.termination, Action.REJECT, actor.party)

        after = self._persist(lease, None, actor=actor, action=Action.REJECT)
        notified = send(self.notifier, after.tenant_user_id, messages.termination_rejected(lease_id=after.id))
        return self._result(lease, after, actor=actor, action=Action.REJECT, notified=notified)

    def cancel(self, lease_id: int, *, actor: Actor) -> TransitionResult:
        """Withdraw an open request; only the party who opened it may cancel."""
        lease = self.store.read_lease(lease_id)
        check_transition(lease.termination, Action.CANCEL, actor.party)

        after = self._persist(lease, None, actor=actor, action=Action.CANCEL)
        return self._result(lease, after, actor=actor, action=Action.CANCEL, notified=False)

    def complete(self, lease_id: int, *, actor: Actor) -> TransitionResult:
        """
        Final step: the case becomes terminal, the unit is marked vacant and
        the tenant's details are cleared in the same write.
        """
        lease = self.store.read_lease(lease_id)
        check_transition(lease.termination, Action.COMPLETE, actor.party)
        cur = lease.termination
        tenant_user_id = lease.tenant_user_id

        case = Terminated(
            termination_date=cur.termination_date,
            requested_at=cur.requested_at,
            terminated_at=self.clock(),
            confirmed_at=getattr(cur, "confirmed_at", None),
            requested_by=cur.requested_by,
            reason=cur.reason,
            deductions=tuple(getattr(cur, "deductions", ())),
            return_override=getattr(cur, "return_override", None),
        )
        after = self._persist(lease, case, actor=actor, action=Action.COMPLETE, occupancy=vacated_occupancy())
        notified = send(
            self.notifier,
            tenant_user_id,
            messages.terminated(lease_id=after.id, termination_date=case.termination_date),
        )
        return self._result(lease, after, actor=actor, action=Action.COMPLETE, notified=notified)

    def update_deductions(
        self,
        lease_id: int,
        *,
        actor: Actor,
        deductions: Iterable[Any],
        return_override: Any = None,
    ) -> TransitionResult:
        """
        Replace the ledger (and override) of an open case. The case state does
        not change. Passing no override clears any previous one.
        """
        ledger = _ledger_from_input(deductions)

        lease = self.store.read_lease(lease_id)
        cur = lease.termination
        if actor.party != Party.LANDLORD:
            raise IllegalTransition(
                "only the landlord can edit deductions",
                state=cur.status.value if cur else "none",
                action="update_deductions",
            )
        if cur is None or cur.status not in SETTLEMENT_STATES:
            raise IllegalTransition(
                f"cannot edit deductions in state {cur.status.value if cur else 'none'}",
                state=cur.status.value if cur else "none",
                action="update_deductions",
            )
        _apply_override(ledger, return_override, lease.deposit_amount)

        fields: dict[str, Any] = {
            "termination_date": cur.termination_date,
            "requested_at": cur.requested_at,
            "requested_by": cur.requested_by,
            "reason": cur.reason,
            "deductions": ledger.effective_items(),
            "return_override": ledger.override,
        }
        if isinstance(cur, Confirmed):
            case: TerminationCase = Confirmed(confirmed_at=cur.confirmed_at, **fields)
        else:
            case = type(cur)(**fields)

        after = self.store.update_termination_case(
            lease.id,
            case,
            expected_version=lease.version,
            actor=actor.user_id,
            action="lease.termination.deductions",
        )
        log.info(
            "termination_deductions_updated",
            extra={
                "lease_id": after.id,
                "actor": actor.user_id,
                "items": len(case.deductions),
                "override": case.return_override,
            },
        )
        status = status_of(after.termination)
        return TransitionResult(
            lease=after,
            action=None,
            from_status=status,
            to_status=status,
            settlement=self._settlement(after),
        )
