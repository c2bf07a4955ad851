# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
CelesTrak adapter: fetches OMMs in CCSDS XML from the GP API.

External dependencies (urllib) are confined to this layer.

Data source:
    CelesTrak GP API — https://celestrak.org/NORAD/elements/gp.php
    Queries by catalogue number (CATNR), international designator
    (INTDES) or name (NAME), always with FORMAT=xml.

Rate limiting: CelesTrak updates at most every 2 hours.
"""
import logging
import re
import urllib.error
import urllib.request
from typing import Any, Callable
from urllib.parse import quote

from orbit_data_messages.adapters.omm_decoder import parse_omms
from orbit_data_messages.domain.omm import OrbitMeanElementsMessage
from orbit_data_messages.ports.omm_fetcher import OmmFetcher


_log = logging.getLogger(__name__)

BASE_URL = "https://celestrak.org/NORAD/elements/gp.php"
DEFAULT_TIMEOUT = 30
USER_AGENT = "OrbitDataMessages/0.1"

_INTL_DESIGNATOR_RE = re.compile(r"^[0-9]{4}-[0-9]{3}$")


def _query_param(
    satellite_number: int | None,
    international_designator: str | None,
    satellite_name: str | None,
) -> tuple[str, str, str]:
    """Return (description, value, URL parameter) for the first given criterion."""
    if satellite_number is not None:
        if satellite_number < 0:
            raise ValueError("The satellite number must be positive.")
        value = str(satellite_number)
        return "satellite number", value, f"CATNR={quote(value)}"

    if international_designator is not None:
        if _INTL_DESIGNATOR_RE.match(international_designator) is None:
            raise ValueError("The international designator must have the format `YYYY-NNN`.")
        return "international designator", international_designator, f"INTDES={quote(international_designator)}"

    if satellite_name is not None:
        if not satellite_name:
            raise ValueError("The satellite name is empty.")
        return "satellite name", satellite_name, f"NAME={quote(satellite_name)}"

    raise ValueError("Specify one of: satellite_number, international_designator or satellite_name")


def build_query(
    satellite_number: int | None = None,
    international_designator: str | None = None,
    satellite_name: str | None = None,
) -> str:
    """
    Build the GP query string for one search criterion.

    Precedence when several are given: satellite number, then international
    designator (YYYY-NNN), then name.

    Returns:
        Query string starting with '?', e.g. '?CATNR=25544&FORMAT=xml'.

    Raises:
        ValueError: If no criterion is given or the chosen one is invalid.
    """
    _, _, param = _query_param(satellite_number, international_designator, satellite_name)
    return f"?{param}&FORMAT=xml"


class CelestrakOmmFetcher(OmmFetcher):
    """Fetches OMMs from CelesTrak's GP API."""

    def __init__(self, base_url: str = BASE_URL, timeout: int = DEFAULT_TIMEOUT):
        self._base_url = base_url
        self._timeout = timeout

    def fetch_omms(
        self,
        satellite_number: int | None = None,
        international_designator: str | None = None,
        satellite_name: str | None = None,
        float_type: Callable[[Any], Any] = float,
    ) -> list[OrbitMeanElementsMessage]:
        """
        Fetch the OMMs matching one search criterion.

        Returns:
            Decoded OMMs, or an empty list if CelesTrak has no GP data.

        Raises:
            ValueError: On an invalid or rejected query.
            ConnectionError: On HTTP or network failure.
        """
        description, value, param = _query_param(
            satellite_number, international_designator, satellite_name,
        )
        _log.info("Fetching OMMs from CelesTrak by %s: %r", description, value)

        query = f"?{param}&FORMAT=xml"
        text = self._fetch_text(self._base_url + query)

        if "No GP data found" in text:
            _log.warning("No OMM found for %s %r", description, value)
            return []
        if "Invalid query" in text:
            raise ValueError(f"Invalid query: {query}")

        omms = parse_omms(text, float_type)
        if omms is None:
            raise ValueError("CelesTrak response does not contain an OMM or NDM document")
        return omms

    def _fetch_text(self, url: str) -> str:
        """Fetch the response body as text."""
        _log.debug("Fetch URL: %s", url)
        req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as response:
                return response.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            _log.error("CelesTrak request failed with HTTP %s for %s", e.code, url)
            raise ConnectionError(f"CelesTrak API error {e.code}: {e.reason}") from e
        except urllib.error.URLError as e:
            _log.error("CelesTrak connection failed for %s: %s", url, e.reason)
            raise ConnectionError(f"CelesTrak connection failed: {e.reason}") from e
