# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Port interfaces for fetching Orbit Mean-Elements Messages.

Adapters implement these to handle the HTTP services.
"""
from orbit_data_messages.ports.omm_fetcher import OmmFetcher, SessionStore

__all__ = ["OmmFetcher", "SessionStore"]
