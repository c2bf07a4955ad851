# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Adapters for OMM XML I/O and the CelesTrak/Space-Track services.

External dependencies (xml, urllib, file I/O) are confined to this layer.
"""
from orbit_data_messages.adapters.celestrak import CelestrakOmmFetcher
from orbit_data_messages.adapters.spacetrack import FileSessionStore, SpaceTrackOmmFetcher

__all__ = ["CelestrakOmmFetcher", "FileSessionStore", "SpaceTrackOmmFetcher"]
