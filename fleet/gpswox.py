"""
Live fleet feed backed by a GPSwox tracking server.

The feed logs in with an email/password pair, caches the returned API hash
for a limited time and lists the tracked devices, turning each into a
FleetSnapshotEntry.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from .snapshot import FleetSnapshotEntry

logger = logging.getLogger(__name__)


class FeedError(Exception):
    """The fleet feed could not produce a snapshot."""


class AuthenticationError(FeedError):
    """Login was refused or the API hash is no longer accepted."""


def normalize_api_url(api_url: str) -> str:
    """Ensure a scheme, drop a trailing slash and end the URL with /api."""
    api_url = api_url.strip()
    if not api_url.startswith(("http://", "https://")):
        api_url = "https://" + api_url
    api_url = api_url.rstrip("/")
    if not api_url.endswith("/api"):
        api_url += "/api"
    return api_url


def mask_email(email: Optional[str]) -> str:
    """'fleet@example.com' -> 'fle***@example.com'."""
    if not email:
        return "EMPTY"
    domain = email.split("@")[1] if "@" in email else "???"
    return f"{email[:3]}***@{domain}"


class ApiHashCache:
    """Holds the login hash until it expires or is reset."""

    def __init__(self, ttl: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._hash: Optional[str] = None
        self._expires_at = 0.0

    def get(self) -> Optional[str]:
        if self._hash is not None and self.clock() < self._expires_at:
            return self._hash
        return None

    def set(self, api_hash: str) -> None:
        self._hash = api_hash
        self._expires_at = self.clock() + self.ttl

    def reset(self) -> None:
        self._hash = None
        self._expires_at = 0.0


def _number(value: Any) -> Optional[float]:
    """Numeric sensor or position value; None for missing, boolean or junk."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_device(device: Dict[str, Any]) -> FleetSnapshotEntry:
    """
    Convert a GPSwox device into a snapshot entry.

    The odometer comes from the device itself, else from a sensor of type
    'odometer'. A device reporting neither has an unknown odometer.
    """
    odometer = _number(device.get("odometer")) or None
    if odometer is None:
        sensors = device.get("sensors")
        for sensor in sensors if isinstance(sensors, list) else []:
            if not isinstance(sensor, dict):
                continue
            if str(sensor.get("type") or "").lower() == "odometer":
                value = _number(sensor.get("val"))
                if value is not None:
                    odometer = value

    legacy = device.get("device_data")
    legacy = legacy if isinstance(legacy, dict) else {}
    if device.get("lat") is not None and device.get("lng") is not None:
        lat, lng = _number(device.get("lat")), _number(device.get("lng"))
        speed, timestamp = _number(device.get("speed")), device.get("time")
    elif legacy:
        lat, lng = _number(legacy.get("lat")), _number(legacy.get("lng"))
        speed, timestamp = _number(legacy.get("speed")), legacy.get("time")
    else:
        lat = lng = speed = timestamp = None

    return FleetSnapshotEntry(
        plate=str(device.get("name", "")),
        odometer_km=odometer,
        device_id=str(device["id"]) if device.get("id") is not None else None,
        online=device.get("online"),
        lat=lat,
        lng=lng,
        speed=speed,
        timestamp=timestamp,
    )


class GPSwoxFeed:
    """Polls a GPSwox server for the current state of every tracked vehicle."""

    def __init__(
        self,
        api_url: str,
        email: str,
        password: str,
        session: Optional[requests.Session] = None,
        cache: Optional[ApiHashCache] = None,
        timeout: float = 15,
        max_retries: int = 3,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_url = normalize_api_url(api_url)
        self.email = email
        self.password = password
        self.session = session or requests.Session()
        self.cache = cache or ApiHashCache()
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.sleep = sleep

    @classmethod
    def from_config(cls, config) -> "GPSwoxFeed":
        return cls(
            config.GPSWOX_API_URL,
            config.GPSWOX_EMAIL,
            config.GPSWOX_PASSWORD,
            cache=ApiHashCache(ttl=config.GPSWOX_HASH_TTL),
            timeout=config.GPSWOX_TIMEOUT,
            max_retries=config.GPSWOX_MAX_RETRIES,
        )

    def poll(self) -> List[FleetSnapshotEntry]:
        """Return one snapshot entry per device. Raises FeedError on failure."""
        api_hash = self._api_hash()
        try:
            devices = self._get_devices(api_hash)
        except AuthenticationError:
            logger.warning("GPSwox rejected the cached API hash, logging in again")
            self.cache.reset()
            devices = self._get_devices(self._api_hash())
        entries = [parse_device(d) for d in devices]
        logger.debug("Fetched %d devices from GPSwox", len(entries))
        return entries

    def _fetch(self, url: str, params: Dict[str, str]) -> requests.Response:
        """GET with timeout and exponential backoff between attempts."""
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                return self.session.get(
                    url,
                    params=params,
                    headers={"Accept": "application/json"},
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                last_error = e
                logger.info("Fetch attempt %d/%d failed: %s", attempt, self.max_retries, e)
                if attempt < self.max_retries:
                    self.sleep(min(2 ** (attempt - 1), 5))
        raise FeedError(f"All fetch attempts failed: {last_error}")

    @staticmethod
    def _json(response: requests.Response, what: str) -> Any:
        try:
            return response.json()
        except ValueError:
            raise FeedError(f"Invalid response format from {what} API") from None

    def _login(self, api_url: str) -> str:
        logger.info("Logging in to GPSwox API with email: %s", mask_email(self.email))
        response = self._fetch(
            f"{api_url}/login", {"email": self.email, "password": self.password}
        )
        data = self._json(response, "login")
        if not isinstance(data, dict) or data.get("status") != 1 or not data.get("user_api_hash"):
            message = data.get("message") if isinstance(data, dict) else None
            raise AuthenticationError(message or "Login failed")
        return data["user_api_hash"]

    def _api_hash(self) -> str:
        cached = self.cache.get()
        if cached:
            return cached
        try:
            api_hash = self._login(self.api_url)
        except FeedError:
            if not self.api_url.startswith("https://"):
                raise
            http_url = "http://" + self.api_url[len("https://"):]
            logger.info("Retrying login over HTTP")
            api_hash = self._login(http_url)
            self.api_url = http_url
        self.cache.set(api_hash)
        return api_hash

    def _get_devices(self, api_hash: str) -> List[Dict[str, Any]]:
        response = self._fetch(f"{self.api_url}/get_devices", {"user_api_hash": api_hash})
        if response.status_code in (401, 403):
            raise AuthenticationError(f"Devices request refused ({response.status_code})")
        data = self._json(response, "devices")

        # Either a list of groups, each with its items...
        if isinstance(data, list):
            devices = []
            for group in data:
                items = group.get("items") if isinstance(group, dict) else None
                if isinstance(items, list):
                    devices.extend(items)
            return self._only_devices(devices)

        # ...or an object with a status flag
        if not isinstance(data, dict) or data.get("status") != 1:
            message = data.get("message") if isinstance(data, dict) else None
            raise FeedError(message or "Failed to fetch devices")
        items = data.get("items")
        return self._only_devices(items if isinstance(items, list) else [])

    @staticmethod
    def _only_devices(items: List[Any]) -> List[Dict[str, Any]]:
        devices = [item for item in items if isinstance(item, dict)]
        if len(devices) < len(items):
            logger.warning("Skipped %d malformed device entries", len(items) - len(devices))
        return devices
