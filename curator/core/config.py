"""
Taxonomy service configuration.
All settings come from environment variables; getters re-read the environment
so tests can flip flags without reloading modules.
"""

import os
from pathlib import Path

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/taxonomy.db")

DEBUG = os.getenv("DEBUG", "true").lower() == "true"

# Admin gate (identity collaborator)
ADMIN_AUTH_TOKEN = os.getenv("ADMIN_AUTH_TOKEN")  # Required for any write
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@curator.local")

# Taxonomy behaviour
TAXONOMY_SEED_DEFAULTS = os.getenv("TAXONOMY_SEED_DEFAULTS", "true").lower() == "true"
DEFAULT_IMPORT_MAX_BYTES = 2 * 1024 * 1024
IMPORT_MAX_BYTES = os.getenv("IMPORT_MAX_BYTES", str(DEFAULT_IMPORT_MAX_BYTES))  # Parsed by get_import_max_bytes()

# Version string
VERSION = "1.0.0"


def get_db_path():
    """Get the configured database path."""
    return os.getenv("DB_PATH", DB_PATH)


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "true").lower() == "true"


def get_admin_token():
    """Get the admin token the HTTP layer compares against."""
    return os.getenv("ADMIN_AUTH_TOKEN", ADMIN_AUTH_TOKEN or "")


def get_admin_email():
    return os.getenv("ADMIN_EMAIL", ADMIN_EMAIL)


def seed_defaults_enabled():
    """Check if a fresh store should be seeded with default variables."""
    return os.getenv("TAXONOMY_SEED_DEFAULTS", "true").lower() == "true"


def get_import_max_bytes():
    return int(os.getenv("IMPORT_MAX_BYTES", IMPORT_MAX_BYTES))


def ensure_db_directory(db_path: str = None):
    """Ensure the database directory exists."""
    Path(db_path or get_db_path()).parent.mkdir(parents=True, exist_ok=True)


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    token = get_admin_token()
    if not token or not token.strip():
        issues.append("ADMIN_AUTH_TOKEN must be set; admin endpoints will reject every request")

    try:
        max_bytes = get_import_max_bytes()
        if max_bytes < 1:
            issues.append("IMPORT_MAX_BYTES must be >= 1")
    except ValueError:
        issues.append(f"Invalid IMPORT_MAX_BYTES: {os.getenv('IMPORT_MAX_BYTES')}")

    if os.getenv("TAXONOMY_SEED_DEFAULTS", "true").lower() not in ["true", "false"]:
        issues.append(f"Invalid TAXONOMY_SEED_DEFAULTS: {os.getenv('TAXONOMY_SEED_DEFAULTS')}")

    return issues
