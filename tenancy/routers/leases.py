# tenancy/routers/leases.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import get_actor
from ..db import get_db
from ..domain.lease_status import lease_status
from ..domain.termination import Action, Actor, allowed_actions, status_of
from ..domain.settlement import Obligations
from ..schemas import DeductionsIn, LeaseStatusOut, RefundOut, SettlementOut, TerminationActionIn, TransitionOut
from ..services.contract_store import SqlContractStore
from ..services.notifier import DbNotifier
from ..services.termination_workflow import TerminationWorkflow, TransitionResult

router = APIRouter(prefix="/leases", tags=["leases"])


def get_store(db: Session = Depends(get_db)) -> SqlContractStore:
    return SqlContractStore(db)


def get_workflow(db: Session = Depends(get_db)) -> TerminationWorkflow:
    return TerminationWorkflow(SqlContractStore(db), DbNotifier(db))


def _today(today: Optional[date]) -> date:
    return today or datetime.utcnow().date()


def _out(result: TransitionResult) -> dict:
    return result.as_dict()


@router.get("/{lease_id}/status", response_model=LeaseStatusOut)
def get_lease_status(
    lease_id: int,
    today: Optional[date] = Query(default=None),
    store: SqlContractStore = Depends(get_store),
):
    lease = store.read_lease(lease_id)
    st = lease_status(lease, today=_today(today))
    status = status_of(lease.termination)
    return {
        "lease_id": lease.id,
        **st.as_dict(),
        "termination_status": status.value if status else None,
        "allowed_actions": [a.value for a in allowed_actions(lease.termination)],
    }


@router.get("/{lease_id}/settlement", response_model=Optional[SettlementOut])
def get_settlement(
    lease_id: int,
    today: Optional[date] = Query(default=None),
    termination_date: Optional[date] = Query(default=None),
    wf: TerminationWorkflow = Depends(get_workflow),
):
    s = wf.settlement(lease_id, today=_today(today), termination_date=termination_date)
    return s.as_dict() if s else None


@router.get("/{lease_id}/termination/refund", response_model=Optional[RefundOut])
def get_refund(
    lease_id: int,
    actual_move_out: Optional[date] = Query(default=None),
    inspection_date: Optional[date] = Query(default=None),
    unpaid_bills: float = Query(default=0.0, ge=0),
    inventory_damage: float = Query(default=0.0, ge=0),
    cleaning_cost: float = Query(default=0.0, ge=0),
    other_debts: float = Query(default=0.0, ge=0),
    wf: TerminationWorkflow = Depends(get_workflow),
):
    obligations = Obligations(
        unpaid_bills=unpaid_bills,
        inventory_damage=inventory_damage,
        cleaning_cost=cleaning_cost,
        other_debts=other_debts,
    )
    r = wf.refund(
        lease_id,
        obligations=obligations,
        actual_move_out=actual_move_out,
        inspection_date=inspection_date,
    )
    return r.as_dict() if r else None


@router.post("/{lease_id}/termination/{action}", response_model=TransitionOut)
def post_termination_action(
    lease_id: int,
    action: Action,
    payload: Optional[TerminationActionIn] = None,
    actor: Actor = Depends(get_actor),
    wf: TerminationWorkflow = Depends(get_workflow),
):
    payload = payload or TerminationActionIn()
    deductions = None if payload.deductions is None else [d.model_dump() for d in payload.deductions]

    if action == Action.REQUEST:
        res = wf.request(
            lease_id,
            actor=actor,
            termination_date=payload.termination_date,
            reason=payload.reason,
            allow_after_contract_end=payload.allow_after_contract_end,
        )
    elif action == Action.INITIATE:
        res = wf.initiate(
            lease_id,
            actor=actor,
            termination_date=payload.termination_date,
            reason=payload.reason,
            deductions=deductions or (),
            return_override=payload.return_override,
            allow_after_contract_end=payload.allow_after_contract_end,
        )
    elif action == Action.CONFIRM:
        res = wf.confirm(lease_id, actor=actor, deductions=deductions, return_override=payload.return_override)
    elif action == Action.REJECT:
        res = wf.reject(lease_id, actor=actor)
    elif action == Action.CANCEL:
        res = wf.cancel(lease_id, actor=actor)
    else:
        res = wf.complete(lease_id, actor=actor)
    return _out(res)


@router.put("/{lease_id}/termination/deductions", response_model=TransitionOut)
def put_deductions(
    lease_id: int,
    payload: DeductionsIn,
    actor: Actor = Depends(get_actor),
    wf: TerminationWorkflow = Depends(get_workflow),
):
    res = wf.update_deductions(
        lease_id,
        actor=actor,
        deductions=[d.model_dump() for d in payload.deductions],
        return_override=payload.return_override,
    )
    return _out(res)
