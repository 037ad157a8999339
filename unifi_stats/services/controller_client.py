"""Client for the UniFi controller REST API.

The dispatch layer only depends on the ``ControllerClient`` protocol; the
``UniFiClient`` below is the httpx implementation used in production. Every
data call returns the ``data`` member of the controller's JSON envelope
(``{"meta": {"rc": "ok"}, "data": [...]}``).
"""

import logging
import time
from typing import Any, Callable, Optional, Protocol, Sequence

import httpx

from unifi_stats.config import Settings
from unifi_stats.exceptions import ControllerAuthError, ControllerError
from unifi_stats.schemas import ControllerProfile

logger = logging.getLogger(__name__)

SESSION_COOKIE = "unifises"

SITE_STATS_ATTRIBS = [
    "bytes",
    "wan-tx_bytes",
    "wan-rx_bytes",
    "wlan_bytes",
    "num_sta",
    "lan-num_sta",
    "wlan-num_sta",
    "time",
]
AP_STATS_ATTRIBS = ["bytes", "num_sta", "time"]
GATEWAY_STATS_ATTRIBS = [
    "time",
    "mem",
    "cpu",
    "loadavg_5",
    "lan-rx_errors",
    "lan-tx_errors",
    "lan-rx_bytes",
    "lan-tx_bytes",
    "lan-rx_packets",
    "lan-tx_packets",
    "lan-rx_dropped",
    "lan-tx_dropped",
]

HOUR_MS = 3600 * 1000
DAY_MS = 24 * HOUR_MS


class ControllerClient(Protocol):
    """Calls the dispatch layer needs besides the per-action data calls."""

    def login(self) -> None: ...

    def get_cookie(self) -> Optional[str]: ...

    def list_sites(self) -> Any: ...

    def stat_sysinfo(self) -> Any: ...


ClientFactory = Callable[[ControllerProfile, str, Optional[str]], Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


class UniFiClient:
    """Synchronous UniFi controller client bound to one site.

    Args:
        profile: Controller URL and credentials.
        site_id: Site machine name used for site-scoped calls.
        cookie: Previously obtained session cookie, reused instead of logging in.
        verify_ssl: Verify the controller's TLS certificate.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport, e.g. a MockTransport in tests.
    """

    def __init__(
        self,
        profile: ControllerProfile,
        site_id: str = "",
        cookie: Optional[str] = None,
        verify_ssl: bool = False,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = profile.url.strip().rstrip("/")
        self.user = profile.user.strip()
        self.password = profile.password
        self.site = site_id or "default"
        self._http = httpx.Client(
            base_url=self.base_url, verify=verify_ssl, timeout=timeout, transport=transport
        )
        if cookie:
            self._http.cookies.set(SESSION_COOKIE, cookie)

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def login(self) -> None:
        """Authenticate against the controller.

        Raises:
            ControllerAuthError: If the controller rejects the credentials.
            ControllerError: If the controller cannot be reached.
        """
        try:
            response = self._http.post(
                "/api/login", json={"username": self.user, "password": self.password}
            )
        except httpx.RequestError as e:
            raise ControllerError(f"Cannot reach controller at {self.base_url}: {e}") from e
        if response.status_code in (400, 401, 403):
            raise ControllerAuthError(
                f"HTTP response status: {response.status_code}. "
                "This is probably caused by a UniFi controller login failure."
            )
        if response.status_code >= 400:
            raise ControllerError(f"Login failed with HTTP status {response.status_code}")
        logger.info("Logged in to %s as %s", self.base_url, self.user)

    def get_cookie(self) -> Optional[str]:
        return self._http.cookies.get(SESSION_COOKIE)

    def _request(self, path: str, payload: Optional[dict] = None) -> Any:
        try:
            if payload is None:
                response = self._http.get(path)
            else:
                response = self._http.post(path, json=payload)
        except httpx.RequestError as e:
            raise ControllerError(f"Request to {path} failed: {e}") from e

        if response.status_code == 401:
            raise ControllerAuthError("The controller session has expired.")
        try:
            body = response.json()
        except ValueError as e:
            raise ControllerError(
                f"Invalid response from {path} (HTTP {response.status_code})"
            ) from e

        meta = body.get("meta", {}) if isinstance(body, dict) else {}
        if meta.get("rc") != "ok":
            msg = meta.get("msg", "unknown error")
            if msg == "api.err.LoginRequired":
                raise ControllerAuthError("The controller session has expired.")
            raise ControllerError(f"Controller returned an error for {path}: {msg}")
        return body.get("data")

    def _site(self, endpoint: str, payload: Optional[dict] = None) -> Any:
        return self._request(f"/api/s/{self.site}/{endpoint}", payload)

    def _report(
        self, interval: str, kind: str, span_ms: int, attribs: Sequence[str]
    ) -> Any:
        end = _now_ms()
        if interval == "daily":
            end -= end % HOUR_MS
        payload = {"attrs": list(attribs), "start": end - span_ms, "end": end}
        return self._site(f"stat/report/{interval}.{kind}", payload)

    # ------------------------------------------------------------------
    # Controller and site level
    # ------------------------------------------------------------------

    def list_sites(self) -> Any:
        return self._request("/api/self/sites")

    def stat_sites(self) -> Any:
        return self._request("/api/stat/sites")

    def list_all_admins(self) -> Any:
        return self._request("/api/stat/admin")

    def list_admins(self) -> Any:
        return self._site("cmd/sitemgr", {"cmd": "get-admins"})

    def list_backups(self) -> Any:
        return self._site("cmd/backup", {"cmd": "list-backups"})

    def stat_sysinfo(self) -> Any:
        return self._site("stat/sysinfo")

    def list_self(self) -> Any:
        return self._site("self")

    def list_settings(self) -> Any:
        return self._site("get/setting")

    def list_country_codes(self) -> Any:
        return self._site("stat/ccode")

    # ------------------------------------------------------------------
    # Clients, users and guests
    # ------------------------------------------------------------------

    def list_clients(self) -> Any:
        return self._site("stat/sta")

    def stat_allusers(self, historyhours: int = 8760) -> Any:
        return self._site("stat/alluser", {"type": "all", "conn": "all", "within": historyhours})

    def stat_auths(self) -> Any:
        return self._site("stat/authorization")

    def list_guests(self, within: int = 8760) -> Any:
        return self._site("stat/guest", {"within": within})

    def list_users(self) -> Any:
        return self._site("list/user")

    def list_usergroups(self) -> Any:
        return self._site("list/usergroup")

    def stat_sessions(self) -> Any:
        end = int(time.time())
        return self._site("stat/session", {"type": "all", "start": end - 7 * 86400, "end": end})

    # ------------------------------------------------------------------
    # Interval statistics
    # ------------------------------------------------------------------

    def stat_5minutes_site(self) -> Any:
        return self._report("5minutes", "site", 12 * HOUR_MS, SITE_STATS_ATTRIBS)

    def stat_hourly_site(self) -> Any:
        return self._report("hourly", "site", 7 * DAY_MS, SITE_STATS_ATTRIBS)

    def stat_daily_site(self) -> Any:
        return self._report("daily", "site", 52 * 7 * DAY_MS, SITE_STATS_ATTRIBS)

    def stat_5minutes_aps(self) -> Any:
        return self._report("5minutes", "ap", 12 * HOUR_MS, AP_STATS_ATTRIBS)

    def stat_hourly_aps(self) -> Any:
        return self._report("hourly", "ap", 7 * DAY_MS, AP_STATS_ATTRIBS)

    def stat_daily_aps(self) -> Any:
        return self._report("daily", "ap", 7 * DAY_MS, AP_STATS_ATTRIBS)

    def stat_5minutes_gateway(self, attribs: Sequence[str] = GATEWAY_STATS_ATTRIBS) -> Any:
        return self._report("5minutes", "gw", 12 * HOUR_MS, attribs)

    def stat_hourly_gateway(self, attribs: Sequence[str] = GATEWAY_STATS_ATTRIBS) -> Any:
        return self._report("hourly", "gw", 7 * DAY_MS, attribs)

    def stat_daily_gateway(self, attribs: Sequence[str] = GATEWAY_STATS_ATTRIBS) -> Any:
        return self._report("daily", "gw", 52 * 7 * DAY_MS, attribs)

    def list_dashboard(self, five_minutes: bool = False) -> Any:
        suffix = "?scale=5minutes" if five_minutes else ""
        return self._site(f"stat/dashboard{suffix}")

    def list_health(self) -> Any:
        return self._site("stat/health")

    def list_dpi_stats(self) -> Any:
        return self._site("stat/dpi")

    def list_portforward_stats(self) -> Any:
        return self._site("stat/portforward")

    # ------------------------------------------------------------------
    # Devices and radio
    # ------------------------------------------------------------------

    def list_devices(self) -> Any:
        return self._site("stat/device")

    def list_tags(self) -> Any:
        return self._site("rest/tag")

    def list_wlan_groups(self) -> Any:
        return self._site("list/wlangroup")

    def list_known_rogueaps(self) -> Any:
        return self._site("rest/rogueknown")

    def list_current_channels(self) -> Any:
        return self._site("stat/current-channel")

    # ------------------------------------------------------------------
    # Events and alarms
    # ------------------------------------------------------------------

    def list_events(self, historyhours: int = 720, start: int = 0, limit: int = 3000) -> Any:
        payload = {"_sort": "-time", "within": historyhours, "_start": start, "_limit": limit}
        return self._site("stat/event", payload)

    def list_alarms(self) -> Any:
        return self._site("list/alarm")

    def count_alarms(self, archived: Optional[bool] = None) -> Any:
        suffix = "?archived=false" if archived is False else ""
        return self._site(f"cnt/alarm{suffix}")

    def stat_ips_events(self) -> Any:
        end = _now_ms()
        return self._site("stat/ips/event", {"start": end - DAY_MS, "end": end, "_limit": 10000})

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def list_firewallgroups(self) -> Any:
        return self._site("rest/firewallgroup")

    def list_wlanconf(self) -> Any:
        return self._site("list/wlanconf")

    def list_extension(self) -> Any:
        return self._site("list/extension")

    def list_portconf(self) -> Any:
        return self._site("list/portconf")

    def list_networkconf(self) -> Any:
        return self._site("list/networkconf")

    def list_dynamicdns(self) -> Any:
        return self._site("list/dynamicdns")

    def list_portforwarding(self) -> Any:
        return self._site("list/portforward")

    def list_radius_accounts(self) -> Any:
        return self._site("rest/account")

    def list_radius_profiles(self) -> Any:
        return self._site("rest/radiusprofile")

    # ------------------------------------------------------------------
    # Hotspot
    # ------------------------------------------------------------------

    def stat_voucher(self) -> Any:
        return self._site("stat/voucher")

    def stat_payment(self) -> Any:
        return self._site("stat/payment")

    def list_hotspotop(self) -> Any:
        return self._site("list/hotspotop")


def build_client_factory(config: Settings) -> ClientFactory:
    """Return a factory creating UniFiClient instances with the configured transport options."""

    def factory(
        profile: ControllerProfile, site_id: str, cookie: Optional[str]
    ) -> UniFiClient:
        return UniFiClient(
            profile,
            site_id=site_id,
            cookie=cookie,
            verify_ssl=config.CONTROLLER_VERIFY_SSL,
            timeout=config.CONTROLLER_TIMEOUT,
        )

    return factory
