# backend/uidops/config.py
from __future__ import annotations
import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the process unless DATABASE_URL points elsewhere
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///uid_ops.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Calendar used for date_local defaults and Monday anchoring
    BUSINESS_TZ = os.environ.get("BUSINESS_TZ", "America/Chicago")

    # "*" allows any origin; "https://*.netlify.app" style values allow preview subdomains
    ALLOWED_ORIGIN = os.environ.get("ALLOWED_ORIGIN", "*")

    EVENT_STREAM_KEEPALIVE_SECONDS = float(os.environ.get("EVENT_STREAM_KEEPALIVE_SECONDS", "15"))

    # Per-client buffer; a client that falls this far behind is disconnected
    EVENT_STREAM_QUEUE_SIZE = int(os.environ.get("EVENT_STREAM_QUEUE_SIZE", "256"))

    RECORDS_QUERY_MAX_LIMIT = int(os.environ.get("RECORDS_QUERY_MAX_LIMIT", "5000"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
