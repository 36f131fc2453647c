# tests/conftest.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tenancy.db import init_db
from tenancy.domain.errors import CollaboratorError, ConcurrentUpdate, LeaseNotFound
from tenancy.domain.lease import LeaseRecord, OccupancyStatus, parse_response
from tenancy.domain.termination import Actor, Party, TerminationCase
from tenancy.models import Lease

TENANT = Actor(party=Party.TENANT, user_id="T1")
LANDLORD = Actor(party=Party.LANDLORD, user_id="L1")


# -------------------- collaborator fakes --------------------


@dataclass
class InMemoryStore:
    leases: dict[int, LeaseRecord] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    fail_writes: bool = False
    fail_ids: set[int] = field(default_factory=set)

    def add(self, lease: LeaseRecord) -> LeaseRecord:
        self.leases[lease.id] = lease
        return lease

    def read_lease(self, lease_id: int) -> LeaseRecord:
        self.calls.append("read")
        if lease_id not in self.leases:
            raise LeaseNotFound(f"lease {lease_id} not found")
        return self.leases[lease_id]

    def _write(self, lease_id: int, expected_version: int, **changes: Any) -> LeaseRecord:
        self.calls.append("write")
        if self.fail_writes or lease_id in self.fail_ids:
            raise CollaboratorError("store unavailable")
        cur = self.leases[lease_id]
        if cur.version != expected_version:
            raise ConcurrentUpdate("stale")
        new = replace(cur, version=cur.version + 1, **changes)
        self.leases[lease_id] = new
        return new

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
        return self._write(lease_id, expected_version, termination=case, **(occupancy or {}))

    def update_lease_occupancy(self, lease_id, patch, *, expected_version, actor=None) -> LeaseRecord:
        return self._write(lease_id, expected_version, **patch)

    def update_contract(self, lease_id, patch, *, expected_version, actor=None, action=None) -> LeaseRecord:
        patch = dict(patch)
        if "tenant_response" in patch:
            patch["tenant_response"] = parse_response(patch["tenant_response"])
        return self._write(lease_id, expected_version, **patch)

    def list_leases_for_renewal(self) -> list[LeaseRecord]:
        return [
            l
            for l in self.leases.values()
            if l.occupancy_status == OccupancyStatus.OCCUPIED and not l.auto_renewal_applied
        ]


@dataclass
class RecordingNotifier:
    sent: list[dict[str, Any]] = field(default_factory=list)

    def notify(self, user_id, kind, title, body, data) -> None:
        self.sent.append({"user_id": user_id, "kind": kind, "title": title, "body": body, "data": data})

    def kinds(self) -> list[str]:
        return [m["kind"] for m in self.sent]


class FailingNotifier:
    def notify(self, user_id, kind, title, body, data) -> None:
        raise RuntimeError("push gateway down")


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def lease_record(**kw: Any) -> LeaseRecord:
    base: dict[str, Any] = dict(
        id=1,
        contract_start=date(2024, 7, 1),
        contract_end=date(2025, 6, 30),
        rent_amount=600.0,
        deposit_amount=1000.0,
        tenant_user_id="T1",
        landlord_user_id="L1",
        tenant_name="Jonas Petraitis",
        tenant_email="jonas@example.com",
        tenant_phone="+37060000000",
    )
    base.update(kw)
    return LeaseRecord(**base)


# -------------------- database --------------------


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture()
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def make_lease(db):
    def _make(**kw: Any) -> Lease:
        values: dict[str, Any] = dict(
            contract_start=date(2024, 7, 1),
            contract_end=date(2025, 6, 30),
            rent_amount=600.0,
            deposit_amount=1000.0,
            occupancy_status="occupied",
            tenant_user_id="T1",
            landlord_user_id="L1",
            tenant_name="Jonas Petraitis",
            tenant_email="jonas@example.com",
        )
        values.update(kw)
        row = Lease(**values)
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    return _make
