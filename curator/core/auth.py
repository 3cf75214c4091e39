"""
Admin gate - the identity collaborator's boundary as seen by the variables API.
Sessions and cookies live elsewhere; this only answers "is the caller an admin".
"""

import secrets
from dataclasses import dataclass
from typing import Optional

from . import config
from util.logging import logger


@dataclass
class AdminContext:
    is_authenticated: bool
    email: Optional[str] = None


def authenticate(token_input: Optional[str]) -> bool:
    """
    Validate an admin token against ADMIN_AUTH_TOKEN.

    Returns True if authentication successful, False otherwise.
    All authentication attempts are logged.
    """
    expected_token = config.get_admin_token()

    # Check token exists and is not empty
    if not expected_token or not expected_token.strip():
        logger.log_admin_access(False, "no admin token configured")
        return False

    if not token_input:
        logger.log_admin_access(False, "missing token")
        return False

    if not secrets.compare_digest(token_input.encode("utf-8"), expected_token.encode("utf-8")):
        logger.log_admin_access(False, "invalid token")
        return False

    logger.log_admin_access(True, "token accepted")
    return True


def require_admin(token_input: Optional[str]) -> AdminContext:
    """Admin context for a request; callers must check ``is_authenticated``."""
    if not authenticate(token_input):
        return AdminContext(is_authenticated=False)
    return AdminContext(is_authenticated=True, email=config.get_admin_email())
