# backend/stockledger/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Every store call inherits this timeout; expiry surfaces as TransientError
    STORE_TIMEOUT_SECONDS = float(os.environ.get("STORE_TIMEOUT_SECONDS", "5"))

    # Bounded retries for ledger writes (optimistic conflicts, lock timeouts)
    LEDGER_RETRY_ATTEMPTS = int(os.environ.get("LEDGER_RETRY_ATTEMPTS", "3"))
    LEDGER_RETRY_BACKOFF_SECONDS = float(os.environ.get("LEDGER_RETRY_BACKOFF_SECONDS", "0.05"))

    # Analytics
    LOW_STOCK_CRITICAL_PERCENT = int(os.environ.get("LOW_STOCK_CRITICAL_PERCENT", "50"))
    TOP_BY_VALUE_DEFAULT = int(os.environ.get("TOP_BY_VALUE_DEFAULT", "5"))

    # Sessions
    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", "24"))
    SESSION_IDLE_TIMEOUT_HOURS = int(os.environ.get("SESSION_IDLE_TIMEOUT_HOURS", "2"))
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


def engine_options_for(uri: str, timeout_seconds: float) -> dict:
    """
    Driver-level timeouts so no store call blocks indefinitely.

    - SQLite: busy timeout while waiting for a competing writer's lock;
      pooled connections may be handed to any worker thread
    - PostgreSQL: connect timeout + per-statement timeout
    """
    options: dict = {"pool_pre_ping": True}
    if uri.startswith("sqlite"):
        options["connect_args"] = {"timeout": timeout_seconds, "check_same_thread": False}
    elif uri.startswith("postgresql"):
        options["connect_args"] = {
            "connect_timeout": max(int(timeout_seconds), 1),
            "options": f"-c statement_timeout={int(timeout_seconds * 1000)}",
        }
    return options
