# backend/matpro/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/matpro.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///matpro.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Offline clients push whole days of activity at once
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024

    SYNC_PULL_PAGE_SIZE = int(os.environ.get("SYNC_PULL_PAGE_SIZE", "100"))
    SYNC_PUSH_MAX_RECORDS = int(os.environ.get("SYNC_PUSH_MAX_RECORDS", "5000"))

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
