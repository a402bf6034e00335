"""GistStore — team-shared state via GitHub Gist.

A team that dismisses a finding once should not see it again on every
checkout. Keeping the dismissed set in a Gist shares it across developers
and CI with no infrastructure beyond a GitHub token with the 'gist' scope.

Data format: a single JSON file named `dropcomments_state.json` inside the
Gist, shaped as {workspace: {key: [values]}}.
"""

from __future__ import annotations

import json
import logging
import os

from dropcomments_store.base import BaseStateStore

logger = logging.getLogger(__name__)

_GIST_FILENAME = "dropcomments_state.json"


class GistStore(BaseStateStore):
    """Stores state in a GitHub Gist. Failures are logged and never fatal."""

    def __init__(self, gist_id: str, token: str, workspace: str = ""):
        super().__init__(workspace)
        try:
            from github import Github
        except ImportError:
            raise ImportError("PyGithub is required for GistStore. Install it with: pip install PyGithub")
        self._gist_id = gist_id
        self._gh = Github(token)

    def _get_gist(self):
        return self._gh.get_gist(self._gist_id)

    def get_list(self, key: str) -> list[str]:
        try:
            state = self._read_state(self._get_gist())
        except Exception as e:
            logger.warning("GistStore.get_list() failed: %s", e)
            return []
        values = state.get(self.workspace, {}).get(key, [])
        return [str(v) for v in values] if isinstance(values, list) else []

    def set_list(self, key: str, values: list[str]) -> None:
        try:
            gist = self._get_gist()
            state = self._read_state(gist)
            state.setdefault(self.workspace, {})[key] = list(values)
            gist.edit(files={_GIST_FILENAME: {"content": json.dumps(state, indent=2, sort_keys=True)}})
        except Exception as e:
            # The change still holds for this process; only sharing it failed.
            logger.warning("GistStore.set_list() failed (%s): %s", type(e).__name__, e)
            if os.environ.get("GITHUB_ACTIONS") == "true":
                logger.warning(
                    "The built-in GITHUB_TOKEN does not have Gist permissions. "
                    "Use a PAT with 'gist' scope stored as a repository secret."
                )

    def _read_state(self, gist) -> dict:
        """Read the current JSON object from the Gist file, or return {}."""
        file_obj = gist.files.get(_GIST_FILENAME)
        if file_obj is None:
            return {}
        try:
            state = json.loads(file_obj.content) or {}
        except (json.JSONDecodeError, AttributeError):
            return {}
        return state if isinstance(state, dict) else {}
