# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Space-Track adapter: fetches OMMs in CCSDS XML from the basicspacedata API.

External dependencies (urllib, http.cookies, json, file I/O) are confined
to this layer.

Space-Track is only available to registered users and enforces request
rate limits. Nothing here retries or throttles; see
https://www.space-track.org/documentation#/api before issuing many queries.

Authentication: ``POST /ajaxauth/login`` sets a session cookie named
``chocolatechip``. The token and its expiry are kept in a SessionStore so
later processes can reuse the session without the password.
"""
import json
import logging
import os
import urllib.error
import urllib.request
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from http.cookies import SimpleCookie
from pathlib import Path
from typing import Any, Callable
from urllib.parse import quote, urlencode

from orbit_data_messages.adapters.omm_decoder import parse_omms
from orbit_data_messages.domain.omm import OrbitMeanElementsMessage
from orbit_data_messages.ports.omm_fetcher import OmmFetcher, SessionStore


_log = logging.getLogger(__name__)

SPACETRACK_URL = "https://www.space-track.org"
LOGIN_PATH = "/ajaxauth/login"
COOKIE_NAME = "chocolatechip"
DEFAULT_TIMEOUT = 30
DEFAULT_CACHE_DIR = Path("~/.cache/orbit_data_messages/spacetrack")
USER_AGENT = "OrbitDataMessages/0.1"

# Space-Track sessions last about two hours when the cookie carries no expiry.
_DEFAULT_SESSION_LIFETIME = timedelta(hours=2)

_SPACE_DATA_CLASSES = ("gp", "gp_history")
_ORDER_DIRECTIONS = {"ascending": "asc", "descending": "desc"}


class Raw(str):
    """Predicate value inserted into the query URL without escaping.

    Use for REST operators such as ``Raw("40000--40100")`` or ``Raw(">now-7")``.
    """


def _format_interval_bound(value: date | datetime) -> str:
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    return value.strftime("%Y-%m-%d%%20%H:%M:%S")


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime(value.year, value.month, value.day)


def build_query_url(
    *,
    space_data: str = "gp",
    interval: tuple[date | datetime, date | datetime] | None = None,
    order_by: Iterable[tuple[str, str]] | None = None,
    predicates: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None,
    query_limits: int | range | None = None,
    satellite_name: str | None = None,
    satellite_number: int | None = None,
    base_url: str = SPACETRACK_URL,
) -> str:
    """
    Build a basicspacedata query URL for the GP classes.

    Args:
        space_data: 'gp' (latest element set per object) or 'gp_history'.
        interval: (start, end) EPOCH range. Forces 'gp_history'.
        order_by: (field, 'ascending' | 'descending') pairs.
        predicates: Extra (field, value) filters. Values are URL-escaped
            unless wrapped in Raw.
        query_limits: Maximum row count, or a range of 1-based row indices.
        satellite_name: OBJECT_NAME filter.
        satellite_number: NORAD_CAT_ID filter; wins over satellite_name.

    Raises:
        ValueError: On any invalid argument.
    """
    if space_data not in _SPACE_DATA_CLASSES:
        raise ValueError(
            f"Invalid space data: {space_data!r}. It must be either 'gp' or 'gp_history'."
        )

    query: list[tuple[str, str]] = []

    if interval is not None:
        start, end = interval
        if _as_datetime(start) >= _as_datetime(end):
            raise ValueError("The start date must be earlier than the end date.")
        query.append(("EPOCH", Raw(
            f"{_format_interval_bound(start)}--{_format_interval_bound(end)}"
        )))
        if space_data == "gp":
            _log.debug("Switching space data to gp_history because an interval was given")
            space_data = "gp_history"

    if order_by is not None:
        terms = []
        for field, direction in order_by:
            if direction not in _ORDER_DIRECTIONS:
                raise ValueError(
                    f"Invalid order direction {direction!r} for the field {field!r}. "
                    "It must be either 'ascending' or 'descending'."
                )
            terms.append(f"{field}%20{_ORDER_DIRECTIONS[direction]}")
        if terms:
            query.append(("orderby", Raw(",".join(terms))))

    if query_limits is not None:
        if isinstance(query_limits, range):
            if query_limits.start < 1:
                raise ValueError("The start of the query limits must be greater than or equal to 1.")
            if len(query_limits) <= 0:
                raise ValueError("The end of the query limits must be greater than the start.")
            query.append(("limit", Raw(f"{len(query_limits)},{query_limits.start - 1}")))
        else:
            if query_limits < 1:
                raise ValueError("The query limits must be greater than or equal to 1.")
            query.append(("limit", Raw(str(query_limits))))

    if satellite_number is not None:
        if satellite_number < 0:
            raise ValueError("The satellite number must be positive.")
        query.append(("NORAD_CAT_ID", str(satellite_number)))
    elif satellite_name is not None:
        if not satellite_name:
            raise ValueError("The satellite name is empty.")
        query.append(("OBJECT_NAME", satellite_name))

    if predicates is not None:
        items = predicates.items() if isinstance(predicates, Mapping) else predicates
        for key, value in items:
            query.append((key, value if isinstance(value, Raw) else str(value)))

    path = "".join(
        f"/{key}/{value if isinstance(value, Raw) else quote(value, safe='')}"
        for key, value in query
    )
    return f"{base_url}/basicspacedata/query/class/{space_data}{path}/format/xml"


# ── Session persistence ────────────────────────────────────────────

class FileSessionStore(SessionStore):
    """
    Keeps one JSON file per user with the session token and its expiry.

    Files are written with owner-only permissions. Expired or unreadable
    entries load as None.
    """

    def __init__(self, cache_dir: str | os.PathLike = DEFAULT_CACHE_DIR):
        self._cache_dir = Path(cache_dir).expanduser()

    def _path(self, username: str) -> Path:
        return self._cache_dir / f"session-{quote(username, safe='')}.json"

    def load(self, username: str) -> str | None:
        path = self._path(username)
        if not path.is_file():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                entry = json.load(f)
            token = entry["token"]
            expires = datetime.fromisoformat(entry["expires"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            _log.error("Could not load the Space-Track session from %s: %s", path, e)
            return None
        if expires <= datetime.now(timezone.utc):
            _log.debug("Stored Space-Track session for %s expired at %s", username, expires)
            return None
        return token

    def save(self, username: str, token: str, expires: datetime) -> None:
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(username)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump({"token": token, "expires": expires.isoformat()}, f)


def _session_cookie(headers) -> tuple[str, datetime] | None:
    """Extract (token, expiry) of the session cookie from response headers."""
    for header in headers.get_all("Set-Cookie") or ():
        cookie = SimpleCookie()
        cookie.load(header)
        morsel = cookie.get(COOKIE_NAME)
        if morsel is None:
            continue
        now = datetime.now(timezone.utc)
        if morsel["max-age"]:
            expires = now + timedelta(seconds=int(morsel["max-age"]))
        elif morsel["expires"]:
            expires = parsedate_to_datetime(morsel["expires"])
            if expires.tzinfo is None:
                expires = expires.replace(tzinfo=timezone.utc)
        else:
            expires = now + _DEFAULT_SESSION_LIFETIME
        return morsel.value, expires
    return None


class SpaceTrackOmmFetcher(OmmFetcher):
    """
    Fetches OMMs from Space-Track.

    A stored session is reused when still valid; otherwise the fetcher logs
    in with ``password`` on first use and stores the new session.
    """

    def __init__(
        self,
        username: str,
        session_store: SessionStore | None = None,
        password: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
        base_url: str = SPACETRACK_URL,
    ):
        self._username = username
        self._store = session_store if session_store is not None else FileSessionStore()
        self._password = password
        self._timeout = timeout
        self._base_url = base_url

    def __repr__(self) -> str:
        return f"SpaceTrackOmmFetcher(username={self._username!r})"

    def login(self) -> str:
        """
        Log in with the configured password and store the session.

        Returns:
            The session token.

        Raises:
            PermissionError: If no password is set or the credentials are rejected.
            ConnectionError: On HTTP or network failure.
        """
        if self._password is None:
            raise PermissionError(
                f"No valid Space-Track session for {self._username}; a password is required to log in"
            )

        body = urlencode({"identity": self._username, "password": self._password}).encode("ascii")
        req = urllib.request.Request(
            self._base_url + LOGIN_PATH,
            data=body,
            method="POST",
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "User-Agent": USER_AGENT,
            },
        )
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as response:
                text = response.read().decode("utf-8")
                session = _session_cookie(response.headers)
        except urllib.error.HTTPError as e:
            _log.error("Space-Track login failed with HTTP %s", e.code)
            raise ConnectionError(f"Space-Track login error {e.code}: {e.reason}") from e
        except urllib.error.URLError as e:
            _log.error("Space-Track connection failed: %s", e.reason)
            raise ConnectionError(f"Space-Track connection failed: {e.reason}") from e

        if "Failed" in text or session is None:
            _log.error("Space-Track login failed for %s: invalid username or password", self._username)
            raise PermissionError("Space-Track login failed: invalid username or password.")

        token, expires = session
        self._store.save(self._username, token, expires)
        _log.info("Logged in to Space-Track as %s", self._username)
        return token

    def _session_token(self) -> str:
        token = self._store.load(self._username)
        if token is not None:
            _log.debug("Using the stored Space-Track session for %s", self._username)
            return token
        return self.login()

    def fetch_omms(
        self,
        float_type: Callable[[Any], Any] = float,
        **query: Any,
    ) -> list[OrbitMeanElementsMessage]:
        """
        Fetch the OMMs matching ``query``.

        Keyword arguments are those of build_query_url, plus ``float_type``
        for the decoded messages.

        Raises:
            ValueError: On an invalid query or an unparseable response.
            PermissionError: If no session can be established.
            ConnectionError: On HTTP or network failure.
        """
        url = build_query_url(base_url=self._base_url, **query)
        token = self._session_token()

        _log.info("Fetching OMMs from Space-Track for %s", self._username)
        _log.debug("Query URL: %s", url)

        req = urllib.request.Request(url, headers={
            "Cookie": f"{COOKIE_NAME}={token}",
            "User-Agent": USER_AGENT,
        })
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as response:
                text = response.read().decode("utf-8")
                session = _session_cookie(response.headers)
        except urllib.error.HTTPError as e:
            _log.error("Space-Track request failed with HTTP %s for %s", e.code, url)
            raise ConnectionError(f"Space-Track API error {e.code}: {e.reason}") from e
        except urllib.error.URLError as e:
            _log.error("Space-Track connection failed for %s: %s", url, e.reason)
            raise ConnectionError(f"Space-Track connection failed: {e.reason}") from e

        omms = parse_omms(text, float_type)
        if omms is None:
            raise ValueError("Space-Track response does not contain an OMM or NDM document")

        # A refreshed cookie extends the session.
        if session is not None:
            self._store.save(self._username, *session)
        return omms
