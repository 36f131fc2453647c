# tests/test_deductions.py
from __future__ import annotations

import pytest

from tenancy.domain.deductions import Deduction, DeductionLedger
from tenancy.domain.errors import ValidationError


def test_override_is_the_final_figure_until_cleared():
    ledger = DeductionLedger()
    ledger.append("Carpet cleaning", 150)
    assert ledger.final_return(1000, 1000) == 850.0

    ledger.set_override(500, deposit_amount=1000)
    assert ledger.final_return(1000, 1000) == 500.0

    ledger.clear_override()
    assert ledger.final_return(1000, 1000) == 850.0


def test_editing_the_ledger_drops_the_override():
    ledger = DeductionLedger([Deduction("Keys", 20)], override=700)
    ledger.append("Paint", 80)
    assert ledger.override is None

    ledger.set_override(700, deposit_amount=1000)
    ledger.edit(0, amount=50)
    assert ledger.override is None
    assert ledger.total == 130.0

    ledger.set_override(700, deposit_amount=1000)
    removed = ledger.remove(1)
    assert removed.reason == "Paint"
    assert ledger.override is None
    assert len(ledger) == 1


def test_final_return_never_leaves_deposit_bounds():
    ledger = DeductionLedger([Deduction("Water damage", 1500)])
    assert ledger.final_return(1000, 1000) == 0.0
    assert DeductionLedger().final_return(0, 1000) == 0.0
    assert DeductionLedger(override=1200).final_return(0, 1000) == 1000.0


def test_bad_amounts_are_rejected():
    ledger = DeductionLedger()
    with pytest.raises(ValidationError):
        ledger.append("Refund?", -5)
    with pytest.raises(ValidationError):
        ledger.append("Typo", "ten")
    with pytest.raises(ValidationError):
        ledger.set_override(1000.01, deposit_amount=1000)
    with pytest.raises(ValidationError):
        ledger.edit(3, amount=1)
    with pytest.raises(ValidationError):
        ledger.remove(0)


def test_total_is_rounded_to_cents():
    ledger = DeductionLedger()
    ledger.append("a", 0.1)
    ledger.append("b", 0.2)
    assert ledger.total == 0.3


def test_blank_rows_are_not_persisted():
    ledger = DeductionLedger()
    ledger.append("", 40)
    ledger.append("Lost key", 0)
    ledger.append("Lost fob", 25)
    assert [d.reason for d in ledger.effective_items()] == ["Lost fob"]
    assert ledger.as_dict()["total"] == 65.0
