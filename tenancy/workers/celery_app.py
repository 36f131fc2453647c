# tenancy/workers/celery_app.py
from __future__ import annotations

from celery import Celery

from ..config import settings

celery_app = Celery(
    "tenancy",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["tenancy.workers.renewal_tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    timezone="UTC",
)

celery_app.conf.task_routes = {
    "tenancy.workers.renewal_tasks.*": {"queue": "renewals"},
}

celery_app.conf.beat_schedule = {
    "auto-renewal-sweep": {
        "task": "tenancy.workers.renewal_tasks.run_renewal_sweep",
        "schedule": float(settings.renewal_sweep_interval_seconds),
    },
}
