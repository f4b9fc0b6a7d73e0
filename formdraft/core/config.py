"""
Draft persistence configuration.
Environment driven; read once at import, accessors re-read where values may change at runtime.
"""

import os
from pathlib import Path

# Primary storage medium: session|sqlite
DRAFT_STORAGE = os.getenv("DRAFT_STORAGE", "session")

# Host policy switch for the session medium (false forces the durable fallback)
DRAFT_SESSION_STORAGE_ENABLED = os.getenv("DRAFT_SESSION_STORAGE_ENABLED", "true").lower() == "true"

# Durable medium location
DRAFT_DB_PATH = os.getenv("DRAFT_DB_PATH", "./data/drafts.db")

# Debounce window for field writes
DRAFT_DEBOUNCE_MS = int(os.getenv("DRAFT_DEBOUNCE_MS", "200"))

# Envelope version written under each logical key
DRAFT_SCHEMA_VERSION = int(os.getenv("DRAFT_SCHEMA_VERSION", "0"))

# Debug flag
DEBUG = os.getenv("DEBUG", "false").lower() == "true"

VERSION = "1.0.0"


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def session_storage_enabled():
    """Check if the session medium may be used (dynamic, hosts toggle it in tests)."""
    return os.getenv("DRAFT_SESSION_STORAGE_ENABLED", "true").lower() == "true"


def get_storage_kind():
    """Get configured primary medium (session|sqlite)."""
    return os.getenv("DRAFT_STORAGE", DRAFT_STORAGE)


def get_db_path():
    """Get the durable medium path."""
    return os.getenv("DRAFT_DB_PATH", DRAFT_DB_PATH)


def get_debounce_seconds():
    """Get debounce window in seconds."""
    return DRAFT_DEBOUNCE_MS / 1000.0


def get_schema_version():
    """Get the envelope version."""
    return DRAFT_SCHEMA_VERSION


def ensure_db_directory():
    """Ensure the database directory exists."""
    Path(get_db_path()).parent.mkdir(parents=True, exist_ok=True)


def validate_config():
    """Validate draft configuration and return any issues."""
    issues = []

    if get_storage_kind() not in ["session", "sqlite"]:
        issues.append(f"Invalid DRAFT_STORAGE: {get_storage_kind()}")

    if DRAFT_DEBOUNCE_MS < 0:
        issues.append("DRAFT_DEBOUNCE_MS must be >= 0")

    if DRAFT_SCHEMA_VERSION < 0:
        issues.append("DRAFT_SCHEMA_VERSION must be >= 0")

    if not get_db_path():
        issues.append("DRAFT_DB_PATH cannot be empty")

    return issues
