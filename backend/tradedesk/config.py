# backend/tradedesk/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///tradedesk.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Sequence allocator: bounded retry with capped exponential backoff (seconds)
    SEQUENCE_MAX_ATTEMPTS = int(os.environ.get("SEQUENCE_MAX_ATTEMPTS", "10"))
    SEQUENCE_BACKOFF_BASE = float(os.environ.get("SEQUENCE_BACKOFF_BASE", "0.1"))
    SEQUENCE_BACKOFF_CAP = float(os.environ.get("SEQUENCE_BACKOFF_CAP", "2.0"))

    # Whole-operation retries on lock / optimistic version conflicts
    UNIT_OF_WORK_ATTEMPTS = int(os.environ.get("UNIT_OF_WORK_ATTEMPTS", "3"))

    # Inbound payload summaries as JSON lines; unset disables the file subscriber
    INBOUND_LOG_PATH = os.environ.get("INBOUND_LOG_PATH") or None
