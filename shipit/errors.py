"""Exception types shared by the pipeline, the agents and the API layer."""
from __future__ import annotations

from typing import Any


class ShipItError(Exception):
    """Base class for all errors raised by shipit."""


class ProviderError(ShipItError):
    """A search or reasoning-engine call failed at the transport level."""


class LLMTimeoutError(ProviderError):
    """A single reasoning-engine call exceeded its time budget."""

    def __init__(self, caller: str, timeout: float):
        super().__init__(f"{caller} timed out after {timeout:.0f}s")
        self.caller = caller
        self.timeout = timeout


class StructuredOutputError(ShipItError):
    """The engine returned text that is not the JSON object we asked for."""

    def __init__(self, label: str, detail: str = ""):
        message = f"Invalid JSON from reasoning engine for {label}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.label = label
        self.detail = detail


class PersistenceError(ShipItError):
    """The report store is unavailable or rejected a write."""


class RegenerationError(ShipItError):
    """A selective regeneration batch stopped part-way through.

    Sections listed in ``updates`` were regenerated successfully and stay
    valid; ``remaining`` holds the sections that were never attempted.
    """

    def __init__(
        self,
        failed_section: str,
        cause: BaseException,
        updates: dict[str, dict[str, Any]],
        remaining: list[str],
    ):
        super().__init__(f"Regeneration failed at {failed_section}: {cause}")
        self.failed_section = failed_section
        self.cause = cause
        self.updates = updates
        self.remaining = remaining


class NotFoundError(ShipItError):
    """A referenced report or advisor does not exist."""
