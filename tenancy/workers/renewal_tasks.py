# tenancy/workers/renewal_tasks.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..db import SessionLocal
from ..domain.dates import as_date
from ..services.auto_renewal import AutoRenewalScheduler
from ..services.contract_store import SqlContractStore
from ..services.notifier import DbNotifier
from .celery_app import celery_app

log = logging.getLogger(__name__)


def sweep(today: Optional[str] = None, *, dry_run: bool = False, session_factory=SessionLocal) -> dict:
    """One auto-renewal pass in its own session. Shared by the beat task and the CLI."""
    t = as_date(today) or datetime.utcnow().date()
    db = session_factory()
    try:
        scheduler = AutoRenewalScheduler(SqlContractStore(db), DbNotifier(db), dry_run=dry_run)
        return scheduler.run(t).as_dict()
    finally:
        db.close()


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    name="tenancy.workers.renewal_tasks.run_renewal_sweep",
)
def run_renewal_sweep(self, today: Optional[str] = None) -> dict:
    """
    Beat entry point. Per-lease failures are counted inside the sweep; only a
    failure to list leases at all reaches here and is retried.
    """
    try:
        return sweep(today)
    except Exception as exc:
        log.exception("renewal_sweep_crashed", extra={"today": today})
        raise self.retry(exc=exc)
