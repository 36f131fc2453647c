# tests/test_termination_workflow.py
from __future__ import annotations

from datetime import date, datetime

import pytest

from tenancy.domain.errors import CollaboratorError, IllegalTransition, LeaseNotFound, ValidationError
from tenancy.domain.lease import OccupancyStatus
from tenancy.domain.settlement import Obligations, SettlementScenario
from tenancy.domain.termination import Confirmed, LandlordRequested, TerminationStatus, Terminated
from tenancy.services.termination_workflow import TerminationWorkflow

from conftest import LANDLORD, TENANT, FailingNotifier, FixedClock, InMemoryStore, RecordingNotifier, lease_record

NOW = datetime(2025, 5, 1, 9, 0)


def _setup(notifier=None, **lease_kw):
    store = InMemoryStore()
    store.add(lease_record(**lease_kw))
    notifier = notifier if notifier is not None else RecordingNotifier()
    wf = TerminationWorkflow(store, notifier, clock=FixedClock(NOW))
    return wf, store, notifier


def test_tenant_request_notifies_landlord_with_live_settlement():
    wf, store, notifier = _setup()

    res = wf.request(1, actor=TENANT, termination_date="2025-06-30", reason="Bought a flat")

    assert res.from_status is None
    assert res.to_status == TerminationStatus.TENANT_REQUESTED
    assert res.settlement.scenario == SettlementScenario.AT_END_NOTICE_OK
    assert res.settlement.notice_days == 60
    assert res.settlement.final_return == 1000.0
    assert res.notified

    case = store.leases[1].termination
    assert case.requested_at == NOW
    assert case.requested_by == "T1"
    assert case.reason == "Bought a flat"

    [msg] = notifier.sent
    assert msg["user_id"] == "L1"
    assert msg["kind"] == "contract_termination_requested"
    assert msg["data"]["deposit_return"] == 1000.0


def test_validation_happens_before_any_store_call():
    wf, store, notifier = _setup()

    with pytest.raises(ValidationError):
        wf.request(1, actor=TENANT, termination_date="2025-04-30")
    with pytest.raises(ValidationError):
        wf.request(1, actor=TENANT, termination_date=None)

    assert store.calls == []
    assert notifier.sent == []


def test_move_out_after_contract_end_can_be_disallowed():
    wf, store, _ = _setup()
    with pytest.raises(ValidationError):
        wf.request(1, actor=TENANT, termination_date="2025-07-15", allow_after_contract_end=False)
    assert "write" not in store.calls
    assert store.leases[1].termination is None


def test_wrong_party_and_resubmission_are_illegal():
    wf, store, _ = _setup()
    with pytest.raises(IllegalTransition):
        wf.request(1, actor=LANDLORD, termination_date="2025-06-30")
    assert store.leases[1].version == 1

    wf.request(1, actor=TENANT, termination_date="2025-06-30")
    with pytest.raises(IllegalTransition):
        wf.request(1, actor=TENANT, termination_date="2025-06-30")
    with pytest.raises(IllegalTransition):
        wf.cancel(1, actor=LANDLORD)


def test_confirm_with_deductions_and_override():
    wf, store, notifier = _setup()
    wf.request(1, actor=TENANT, termination_date="2025-06-30")

    res = wf.confirm(1, actor=LANDLORD, deductions=[{"reason": "Broken blinds", "amount": 150}])
    assert res.to_status == TerminationStatus.CONFIRMED
    assert res.settlement.recommended_return == 1000.0
    assert res.settlement.final_return == 850.0
    assert isinstance(store.leases[1].termination, Confirmed)
    assert store.leases[1].termination.confirmed_at == NOW

    confirmed_msg = notifier.sent[-1]
    assert confirmed_msg["user_id"] == "T1"
    assert confirmed_msg["kind"] == "contract_termination_confirmed"
    assert confirmed_msg["data"]["deposit_return"] == 850.0

    res = wf.update_deductions(
        1, actor=LANDLORD, deductions=[{"reason": "Broken blinds", "amount": 150}], return_override=500
    )
    assert res.to_status == TerminationStatus.CONFIRMED
    assert res.settlement.final_return == 500.0

    res = wf.update_deductions(1, actor=LANDLORD, deductions=[{"reason": "Broken blinds", "amount": 150}])
    assert res.settlement.final_return == 850.0


def test_confirm_keeps_the_drafted_ledger():
    wf, store, _ = _setup()
    wf.request(1, actor=TENANT, termination_date="2025-06-30")
    wf.update_deductions(1, actor=LANDLORD, deductions=[{"reason": "Cleaning", "amount": 60}])

    res = wf.confirm(1, actor=LANDLORD)
    assert res.settlement.final_return == 940.0
    assert [d.reason for d in store.leases[1].termination.deductions] == ["Cleaning"]


def test_override_above_deposit_is_rejected_without_writing():
    wf, store, _ = _setup()
    wf.request(1, actor=TENANT, termination_date="2025-06-30")
    version = store.leases[1].version

    with pytest.raises(ValidationError):
        wf.confirm(1, actor=LANDLORD, return_override=1200)
    assert store.leases[1].version == version
    assert store.leases[1].termination.status == TerminationStatus.TENANT_REQUESTED


def test_deductions_are_landlord_only_and_need_an_open_case():
    wf, _, _ = _setup()
    with pytest.raises(IllegalTransition):
        wf.update_deductions(1, actor=LANDLORD, deductions=[])

    wf.request(1, actor=TENANT, termination_date="2025-06-30")
    with pytest.raises(IllegalTransition):
        wf.update_deductions(1, actor=TENANT, deductions=[])


def test_reject_clears_the_case_and_tells_the_tenant():
    wf, store, notifier = _setup()
    wf.request(1, actor=TENANT, termination_date="2025-06-30")

    res = wf.reject(1, actor=LANDLORD)
    assert res.to_status is None
    assert res.settlement is None
    assert store.leases[1].termination is None
    assert notifier.kinds()[-1] == "contract_termination_rejected"

    # a fresh request is possible again
    wf.request(1, actor=TENANT, termination_date="2025-06-30")
    assert store.leases[1].termination.status == TerminationStatus.TENANT_REQUESTED


def test_tenant_cancel_is_silent():
    wf, store, notifier = _setup()
    wf.request(1, actor=TENANT, termination_date="2025-06-30")
    sent_before = len(notifier.sent)

    res = wf.cancel(1, actor=TENANT)
    assert res.to_status is None
    assert store.leases[1].termination is None
    assert len(notifier.sent) == sent_before


def test_complete_vacates_the_unit():
    wf, store, notifier = _setup()
    wf.request(1, actor=TENANT, termination_date="2025-06-30")
    wf.confirm(1, actor=LANDLORD)

    res = wf.complete(1, actor=LANDLORD)
    lease = store.leases[1]
    assert res.to_status == TerminationStatus.TERMINATED
    assert isinstance(lease.termination, Terminated)
    assert lease.termination.confirmed_at == NOW
    assert lease.occupancy_status == OccupancyStatus.VACANT
    assert lease.tenant_user_id is None
    assert lease.tenant_name is None
    assert lease.tenant_email is None

    last = notifier.sent[-1]
    assert last["kind"] == "contract_terminated"
    assert last["user_id"] == "T1"

    for action in (wf.cancel, wf.reject, wf.complete):
        with pytest.raises(IllegalTransition):
            action(1, actor=LANDLORD)


def test_landlord_initiated_case_completes_directly():
    wf, store, notifier = _setup()
    res = wf.initiate(
        1,
        actor=LANDLORD,
        termination_date="2025-05-20",
        reason="Owner moves in",
        deductions=[{"reason": "Repainting", "amount": 200}],
    )
    assert res.to_status == TerminationStatus.LANDLORD_REQUESTED
    assert isinstance(store.leases[1].termination, LandlordRequested)
    # 19 days notice, early: nothing recommended, ledger cannot go below zero
    assert res.settlement.scenario == SettlementScenario.EARLY_NOTICE_LATE
    assert res.settlement.final_return == 0.0
    assert notifier.sent[-1]["kind"] == "contract_termination_initiated"
    assert notifier.sent[-1]["user_id"] == "T1"

    res = wf.complete(1, actor=LANDLORD)
    assert res.to_status == TerminationStatus.TERMINATED
    assert store.leases[1].termination.confirmed_at is None


def test_store_failure_aborts_and_nothing_is_sent():
    wf, store, notifier = _setup()
    store.fail_writes = True

    with pytest.raises(CollaboratorError):
        wf.request(1, actor=TENANT, termination_date="2025-06-30")
    assert store.leases[1].termination is None
    assert notifier.sent == []


def test_unknown_lease():
    wf, _, _ = _setup()
    with pytest.raises(LeaseNotFound):
        wf.request(99, actor=TENANT, termination_date="2025-06-30")


def test_notifier_failure_never_rolls_back():
    wf, store, _ = _setup(notifier=FailingNotifier())

    res = wf.request(1, actor=TENANT, termination_date="2025-06-30")
    assert not res.notified
    assert store.leases[1].termination.status == TerminationStatus.TENANT_REQUESTED


def test_settlement_is_anchored_at_the_request_not_at_viewing_time():
    wf, _, _ = _setup()
    wf.request(1, actor=TENANT, termination_date="2025-06-30")

    s = wf.settlement(1, today=date(2025, 6, 29))
    assert s.notice_days == 60
    assert s.final_return == 1000.0


def test_settlement_preview_without_a_case():
    wf, _, _ = _setup()
    assert wf.settlement(1, today=date(2025, 6, 20)) is None

    s = wf.settlement(1, today=date(2025, 6, 20), termination_date=date(2025, 6, 25))
    assert s.scenario == SettlementScenario.EARLY_NOTICE_LATE
    assert s.final_return == 0.0


def test_missing_recipient_is_skipped_not_an_error():
    wf, store, notifier = _setup(landlord_user_id=None)
    res = wf.request(1, actor=TENANT, termination_date="2025-06-30")
    assert not res.notified
    assert notifier.sent == []
    assert store.leases[1].termination is not None


def test_move_out_is_checked_against_the_stored_request_time():
    store = InMemoryStore()
    store.add(lease_record())
    wf = TerminationWorkflow(store, RecordingNotifier(), clock=FixedClock(datetime(2025, 6, 20, 9, 0)))

    with pytest.raises(ValidationError):
        wf.request(1, actor=TENANT, termination_date="2025-05-15")
    with pytest.raises(ValidationError):
        wf.initiate(1, actor=LANDLORD, termination_date="2025-06-19")
    assert "write" not in store.calls

    wf.request(1, actor=TENANT, termination_date="2025-06-20")
    case = store.leases[1].termination
    assert case.requested_at == datetime(2025, 6, 20, 9, 0)
    assert case.termination_date >= case.requested_at.date()


def test_caller_cannot_supply_its_own_today_for_transitions():
    wf, _, _ = _setup()
    with pytest.raises(TypeError):
        wf.request(1, actor=TENANT, termination_date="2025-05-15", today="2025-05-01")


def test_refund_assessment_for_a_settled_case():
    wf, _, _ = _setup()
    assert wf.refund(1) is None

    wf.request(1, actor=TENANT, termination_date="2025-06-30")
    wf.confirm(1, actor=LANDLORD, deductions=[{"reason": "Cleaning", "amount": 100}])
    wf.complete(1, actor=LANDLORD)

    r = wf.refund(1, actual_move_out="2025-07-03")
    assert r.refundable_amount == 900.0
    assert r.can_refund
    assert r.refund_deadline == date(2025, 7, 17)
    assert r.late_days == 3
    assert r.late_fee == 150.0

    blocked = wf.refund(1, obligations=Obligations(unpaid_bills=40), actual_move_out="2025-06-30")
    assert not blocked.can_refund
    assert blocked.refund_deadline is None
    assert blocked.blocking_reasons == ["Unpaid bills: 40.00"]
