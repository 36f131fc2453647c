# tenancy/domain/lease.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Optional

from .errors import ValidationError
from .termination import TerminationCase, from_columns


class OccupancyStatus(str, Enum):
    OCCUPIED = "occupied"
    VACANT = "vacant"
    MAINTENANCE = "maintenance"


class TenantResponse(str, Enum):
    WANTS_TO_RENEW = "wants_to_renew"
    DOES_NOT_WANT_TO_RENEW = "does_not_want_to_renew"
    NO_RESPONSE = "no_response"


def parse_occupancy(v: Any) -> OccupancyStatus:
    s = (str(v or "") or "occupied").strip().lower()
    try:
        return OccupancyStatus(s)
    except ValueError:
        return OccupancyStatus.OCCUPIED


def parse_response(v: Any) -> Optional[TenantResponse]:
    if v is None or isinstance(v, TenantResponse):
        return v
    s = str(v).strip().lower()
    if not s:
        return None
    try:
        return TenantResponse(s)
    except ValueError:
        raise ValidationError(f"unknown tenant response: {s!r}")


@dataclass(frozen=True)
class LeaseRecord:
    """
    Read model of one lease as the engine sees it.

    The contract store owns persistence; the engine only ever receives these
    snapshots and hands back patches.
    """

    id: int
    contract_start: Optional[date]
    contract_end: Optional[date]
    rent_amount: float
    deposit_amount: float
    occupancy_status: OccupancyStatus = OccupancyStatus.OCCUPIED
    tenant_response: Optional[TenantResponse] = None
    tenant_response_date: Optional[date] = None
    auto_renewal_applied: bool = False

    tenant_user_id: Optional[str] = None
    landlord_user_id: Optional[str] = None
    tenant_name: Optional[str] = None
    tenant_email: Optional[str] = None
    tenant_phone: Optional[str] = None

    termination: Optional[TerminationCase] = None
    version: int = 1

    @classmethod
    def from_row(cls, row: Any) -> "LeaseRecord":
        return cls(
            id=int(row.id),
            contract_start=row.contract_start,
            contract_end=row.contract_end,
            rent_amount=float(row.rent_amount or 0.0),
            deposit_amount=float(row.deposit_amount or 0.0),
            occupancy_status=parse_occupancy(row.occupancy_status),
            tenant_response=parse_response(row.tenant_response),
            tenant_response_date=row.tenant_response_date,
            auto_renewal_applied=bool(row.auto_renewal_applied),
            tenant_user_id=row.tenant_user_id,
            landlord_user_id=row.landlord_user_id,
            tenant_name=row.tenant_name,
            tenant_email=row.tenant_email,
            tenant_phone=row.tenant_phone,
            termination=from_columns(row),
            version=int(row.version or 1),
        )
