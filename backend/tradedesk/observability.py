# Overview: Optional structured event hooks for inbound transaction payloads.

"""
Inbound payload events.

Services send ``transaction_inbound`` with a tag and a small summary of the
payload they were given. Nothing has to be connected: with no receivers the
send is a no-op and the service behaves the same.

``create_app`` stores a ``JsonLinesSink`` on the app when INBOUND_LOG_PATH is
configured. One module-level receiver forwards each event to the sink of the
app it was sent under, so apps never write into each other's files.
"""

from __future__ import annotations

import json
import logging
import os
import threading

from blinker import Namespace
from flask import current_app, has_app_context

from .time_utils import utcnow, to_utc_z

logger = logging.getLogger(__name__)

_signals = Namespace()

transaction_inbound = _signals.signal("transaction-inbound")

SINK_EXTENSION_KEY = "tradedesk.inbound_sink"

SUMMARY_FIELDS = ("type", "transaction_no", "order_number", "discount_cents")


def summarize_payload(payload: dict | None, *, transaction_id=None) -> dict:
    payload = payload or {}
    summary = {
        "ts": to_utc_z(utcnow()),
        "id": transaction_id if transaction_id is not None else payload.get("id"),
    }
    for field in SUMMARY_FIELDS:
        summary[field] = payload.get(field)
    return summary


def emit_inbound(tag: str, payload: dict | None, *, transaction_id=None) -> None:
    transaction_inbound.send(tag, summary=summarize_payload(payload, transaction_id=transaction_id))


class JsonLinesSink:
    """Appends one JSON object per inbound event to a file."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def __call__(self, tag, summary: dict | None = None, **_kwargs) -> None:
        entry = {"tag": tag, **(summary or {})}
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with self._lock, open(self.path, "a", encoding="utf-8") as fh:
                fh.write(json.dumps(entry, default=str) + "\n")
        except OSError:
            logger.warning("Could not write inbound event to %s", self.path, exc_info=True)


def _forward_to_app_sink(tag, summary: dict | None = None, **_kwargs) -> None:
    if not has_app_context():
        return
    sink = current_app.extensions.get(SINK_EXTENSION_KEY)
    if sink is not None:
        sink(tag, summary=summary)


def connect_json_lines_sink(app, path: str) -> JsonLinesSink:
    """Attach a sink to app; the shared forwarding receiver is connected once."""
    sink = JsonLinesSink(path)
    app.extensions[SINK_EXTENSION_KEY] = sink
    transaction_inbound.connect(_forward_to_app_sink)
    return sink
