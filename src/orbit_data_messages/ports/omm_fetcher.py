# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Port interfaces for external OMM sources.

Adapters handle the actual HTTP/API calls.
"""
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from orbit_data_messages.domain.omm import OrbitMeanElementsMessage


@runtime_checkable
class OmmFetcher(Protocol):
    """Port for fetching OMMs from an external catalogue."""

    def fetch_omms(self, **query: Any) -> list[OrbitMeanElementsMessage]:
        """Fetch the OMMs matching ``query``; an empty list if none match."""
        ...


@runtime_checkable
class SessionStore(Protocol):
    """Port for persisting an authenticated session between processes."""

    def load(self, username: str) -> str | None:
        """Return the stored session token, or None if absent or expired."""
        ...

    def save(self, username: str, token: str, expires: datetime) -> None:
        """Store ``token`` for ``username`` until ``expires`` (UTC)."""
        ...
