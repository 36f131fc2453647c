# tests/test_logging_and_messages.py
from __future__ import annotations

import json
import logging
from datetime import date

from tenancy.domain.settlement import calculate_settlement
from tenancy.logging_config import JsonFormatter
from tenancy.middleware.request_id import request_id_ctx
from tenancy.services import notifier as messages


def test_json_formatter_carries_request_id_and_extras():
    record = logging.LogRecord("tenancy.test", logging.INFO, __file__, 1, "termination_transition", None, None)
    record.lease_id = 7
    record.from_state = "tenant_requested"
    record.to_state = "confirmed"

    token = request_id_ctx.set("rid-123")
    try:
        payload = json.loads(JsonFormatter().format(record))
    finally:
        request_id_ctx.reset(token)

    assert payload["message"] == "termination_transition"
    assert payload["request_id"] == "rid-123"
    assert payload["lease_id"] == 7
    assert payload["to_state"] == "confirmed"
    assert "args" not in payload


def test_confirmation_message_quotes_the_settlement():
    s = calculate_settlement(
        contract_end=date(2025, 6, 30),
        termination_date=date(2025, 6, 30),
        request_date=date(2025, 5, 1),
        deposit_amount=1200.0,
    )
    msg = messages.termination_confirmed(lease_id=3, termination_date=date(2025, 6, 30), settlement=s)
    assert msg.kind == "contract_termination_confirmed"
    assert "1,200.00" in msg.body
    assert "2025-06-30" in msg.body
    assert msg.data == {"lease_id": 3, "deposit_return": 1200.0, "deposit_deduction": 0.0, "scenario": "at_end_notice_ok"}


def test_send_swallows_delivery_failures(caplog):
    class Broken:
        def notify(self, *args):
            raise ConnectionError("smtp down")

    with caplog.at_level(logging.ERROR):
        ok = messages.send(Broken(), "T1", messages.termination_rejected(lease_id=1))
    assert ok is False
    assert any(r.getMessage() == "notification_failed" for r in caplog.records)


def test_logging_notifier_only_logs(caplog):
    with caplog.at_level(logging.INFO, logger="tenancy.services.notifier"):
        messages.LoggingNotifier().notify("T1", "auto_renewal", "Lease renewed", "body", {})
    assert any(getattr(r, "kind", None) == "auto_renewal" for r in caplog.records)
