"""GitHub token resolution for the Gist state store.

Only needed when `store: gist` is configured. Resolution order (stops at
first success):
  1. GITHUB_TOKEN environment variable
  2. `gh auth token` (GitHub CLI session)
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

_GH_TIMEOUT = 5


def _gh_session_token() -> str | None:
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=_GH_TIMEOUT,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        logger.debug("gh CLI unavailable; no session token.")
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_github_token() -> str | None:
    """Return a GitHub token for the Gist store, or None. Never raises."""
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token
    token = _gh_session_token()
    if token:
        logger.debug("Resolved GitHub token via gh CLI session.")
    return token
