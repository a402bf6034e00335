"""Abstract state store interface.

The core persists small named lists (the dismissed-finding identities) through
this interface and never learns where they live. Every store is scoped to one
workspace so that several checkouts can share a single backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseStateStore(ABC):
    """Pluggable key → list-of-strings persistence, scoped to a workspace.

    Credentials are passed to the constructor; nothing prompts, so every
    backend works unattended in CI.
    """

    def __init__(self, workspace: str = ""):
        self.workspace = workspace

    @abstractmethod
    def get_list(self, key: str) -> list[str]:
        """Return the stored list for key, or [] if there is none. Never raises."""

    @abstractmethod
    def set_list(self, key: str, values: list[str]) -> None:
        """Replace the stored list for key."""

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Default is a no-op so callers can always call close() safely.
        """
