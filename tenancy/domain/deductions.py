# tenancy/domain/deductions.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional

from .errors import ValidationError


def round2(x: float) -> float:
    return float(round(float(x), 2))


def clamp(lo: float, hi: float, x: float) -> float:
    return max(lo, min(hi, x))


def _amount(v: Any) -> float:
    try:
        amt = float(v)
    except (TypeError, ValueError):
        raise ValidationError(f"deduction amount must be a number, got {v!r}")
    if amt != amt or amt < 0:  # NaN or negative
        raise ValidationError("deduction amount cannot be negative")
    return round2(amt)


@dataclass(frozen=True)
class Deduction:
    reason: str
    amount: float

    def as_dict(self) -> dict:
        return {"reason": self.reason, "amount": self.amount}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Deduction":
        return cls(reason=str(d.get("reason") or ""), amount=_amount(d.get("amount", 0)))


class DeductionLedger:
    """
    Landlord-entered deduction line items applied on top of the calculator's
    recommended return.

    The ledger is ordered and mutable. A manual override replaces the final
    figure entirely while it is set; it never touches the line items.
    """

    def __init__(self, items: Iterable[Deduction] = (), *, override: Optional[float] = None):
        self._items: list[Deduction] = [Deduction(reason=i.reason, amount=_amount(i.amount)) for i in items]
        self._override: Optional[float] = None if override is None else _amount(override)

    # ---- line items ----

    def append(self, reason: str, amount: Any) -> Deduction:
        item = Deduction(reason=str(reason or "").strip(), amount=_amount(amount))
        self._items.append(item)
        self._override = None
        return item

    def remove(self, index: int) -> Deduction:
        try:
            item = self._items.pop(index)
        except IndexError:
            raise ValidationError(f"no deduction at position {index}")
        self._override = None
        return item

    def edit(self, index: int, *, reason: Optional[str] = None, amount: Any = None) -> Deduction:
        try:
            cur = self._items[index]
        except IndexError:
            raise ValidationError(f"no deduction at position {index}")
        item = Deduction(
            reason=cur.reason if reason is None else str(reason).strip(),
            amount=cur.amount if amount is None else _amount(amount),
        )
        self._items[index] = item
        self._override = None
        return item

    def __iter__(self) -> Iterator[Deduction]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> tuple[Deduction, ...]:
        return tuple(self._items)

    @property
    def total(self) -> float:
        return round2(sum(i.amount for i in self._items))

    def effective_items(self) -> tuple[Deduction, ...]:
        # blank or zero rows are UI scratch space, not persisted
        return tuple(i for i in self._items if i.reason and i.amount > 0)

    # ---- override ----

    @property
    def override(self) -> Optional[float]:
        return self._override

    def set_override(self, value: Any, *, deposit_amount: float) -> float:
        v = _amount(value)
        if v > float(deposit_amount):
            raise ValidationError(f"return amount cannot exceed the deposit ({round2(deposit_amount):.2f})")
        self._override = v
        return v

    def clear_override(self) -> None:
        self._override = None

    # ---- result ----

    def final_return(self, recommended_return: float, deposit_amount: float) -> float:
        deposit = max(0.0, float(deposit_amount))
        if self._override is not None:
            return round2(clamp(0.0, deposit, self._override))
        return round2(clamp(0.0, deposit, float(recommended_return) - self.total))

    def as_dict(self) -> dict:
        return {
            "items": [i.as_dict() for i in self._items],
            "total": self.total,
            "override": self._override,
        }
