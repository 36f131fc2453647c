# tenancy/services/contract_store.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.audit import audit_write
from ..domain.errors import CollaboratorError, ConcurrentUpdate, LeaseNotFound, ValidationError
from ..domain.lease import LeaseRecord, OccupancyStatus, TenantResponse
from ..domain.termination import TerminationCase, to_columns
from ..models import Lease

log = logging.getLogger(__name__)

OCCUPANCY_FIELDS = (
    "occupancy_status",
    "tenant_user_id",
    "tenant_name",
    "tenant_email",
    "tenant_phone",
    "tenant_response",
    "tenant_response_date",
)

CONTRACT_FIELDS = (
    "contract_start",
    "contract_end",
    "rent_amount",
    "deposit_amount",
    "tenant_response",
    "tenant_response_date",
    "auto_renewal_applied",
)


def vacated_occupancy() -> dict[str, Any]:
    """Patch applied when a termination completes: unit is free, tenant data cleared."""
    return {
        "occupancy_status": OccupancyStatus.VACANT,
        "tenant_user_id": None,
        "tenant_name": None,
        "tenant_email": None,
        "tenant_phone": None,
        "tenant_response": None,
        "tenant_response_date": None,
    }


class ContractStore(Protocol):
    """Persistence boundary for leases. Every update is guarded by `expected_version`."""

    def read_lease(self, lease_id: int) -> LeaseRecord: ...

    def update_termination_case(
        self,
        lease_id: int,
        case: Optional[TerminationCase],
        *,
        expected_version: int,
        occupancy: Optional[dict[str, Any]] = None,
        actor: Optional[str] = None,
        action: Optional[str] = None,
    ) -> LeaseRecord: ...

    def update_lease_occupancy(
        self,
        lease_id: int,
        patch: dict[str, Any],
        *,
        expected_version: int,
        actor: Optional[str] = None,
    ) -> LeaseRecord: ...

    def update_contract(
        self,
        lease_id: int,
        patch: dict[str, Any],
        *,
        expected_version: int,
        actor: Optional[str] = None,
        action: Optional[str] = None,
    ) -> LeaseRecord: ...

    def list_leases_for_renewal(self) -> list[LeaseRecord]: ...


def _plain(v: Any) -> Any:
    # enums go to the DB as their string value
    if isinstance(v, (OccupancyStatus, TenantResponse)):
        return v.value
    return v


def _check_patch(patch: dict[str, Any], allowed: tuple[str, ...]) -> dict[str, Any]:
    unknown = sorted(set(patch) - set(allowed))
    if unknown:
        raise ValidationError(f"cannot update fields: {', '.join(unknown)}")
    return {k: _plain(v) for k, v in patch.items()}


def _snapshot(row: Lease, fields: tuple[str, ...]) -> dict[str, Any]:
    return {k: getattr(row, k) for k in fields}


class SqlContractStore:
    """
    ContractStore on a SQLAlchemy session.

    Each update is its own transaction: version check, column writes, audit
    row, commit. Any SQLAlchemyError is rolled back and re-raised as
    CollaboratorError so callers never see driver exceptions.
    """

    def __init__(self, db: Session, *, clock=datetime.utcnow):
        self.db = db
        self.clock = clock

    # ---- reads ----

    def _get(self, lease_id: int) -> Lease:
        try:
            row = self.db.get(Lease, int(lease_id))
        except SQLAlchemyError as e:
            self.db.rollback()
            raise CollaboratorError(f"could not read lease {lease_id}") from e
        if row is None:
            raise LeaseNotFound(f"lease {lease_id} not found")
        return row

    def read_lease(self, lease_id: int) -> LeaseRecord:
        return LeaseRecord.from_row(self._get(lease_id))

    def list_leases_for_renewal(self) -> list[LeaseRecord]:
        """Occupied leases that have not been auto-renewed for the current window."""
        q = (
            select(Lease)
            .where(Lease.occupancy_status == OccupancyStatus.OCCUPIED.value)
            .where(Lease.auto_renewal_applied.is_(False))
            .order_by(Lease.id)
        )
        try:
            rows = list(self.db.scalars(q).all())
        except SQLAlchemyError as e:
            self.db.rollback()
            raise CollaboratorError("could not list leases for renewal") from e
        return [LeaseRecord.from_row(r) for r in rows]

    # ---- writes ----

    def _write(
        self,
        lease_id: int,
        values: dict[str, Any],
        *,
        expected_version: int,
        actor: Optional[str],
        action: str,
    ) -> LeaseRecord:
        row = self._get(lease_id)
        if int(row.version or 1) != int(expected_version):
            raise ConcurrentUpdate(
                f"lease {lease_id} was changed by someone else (version {row.version}, expected {expected_version})"
            )

        now = self.clock()
        before = _snapshot(row, tuple(values))
        try:
            for k, v in values.items():
                setattr(row, k, v)
            row.version = int(row.version or 1) + 1
            row.updated_at = now
            audit_write(
                self.db,
                actor_user_id=actor,
                action=action,
                entity_type="Lease",
                entity_id=str(row.id),
                before=before,
                after=values,
                at=now,
            )
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            log.exception("lease_write_failed", extra={"lease_id": lease_id, "action": action})
            raise CollaboratorError(f"could not update lease {lease_id}") from e

        return LeaseRecord.from_row(row)

    def update_termination_case(
        self,
        lease_id: int,
        case: Optional[TerminationCase],
        *,
        expected_version: int,
        occupancy: Optional[dict[str, Any]] = None,
        actor: Optional[str] = None,
        action: Optional[str] = None,
    ) -> LeaseRecord:
        values = to_columns(case)
        if occupancy:
            values.update(_check_patch(occupancy, OCCUPANCY_FIELDS))
        return self._write(
            lease_id,
            values,
            expected_version=expected_version,
            actor=actor,
            action=action or "lease.termination.update",
        )

    def update_lease_occupancy(
        self,
        lease_id: int,
        patch: dict[str, Any],
        *,
        expected_version: int,
        actor: Optional[str] = None,
    ) -> LeaseRecord:
        return self._write(
            lease_id,
            _check_patch(patch, OCCUPANCY_FIELDS),
            expected_version=expected_version,
            actor=actor,
            action="lease.occupancy.update",
        )

    def update_contract(
        self,
        lease_id: int,
        patch: dict[str, Any],
        *,
        expected_version: int,
        actor: Optional[str] = None,
        action: Optional[str] = None,
    ) -> LeaseRecord:
        return self._write(
            lease_id,
            _check_patch(patch, CONTRACT_FIELDS),
            expected_version=expected_version,
            actor=actor,
            action=action or "lease.contract.update",
        )
