"""Selection and dispatch for the API browser.

One request runs through three gates, each short-circuiting the next:

1. No controller selected (a registry is configured, none chosen yet):
   ask the user to pick one. No remote calls.
2. Login required (no cached auth cookie and incomplete credentials):
   ask for the missing credentials. No remote calls.
3. Authenticated: log in if no cookie is cached, fill the site list and
   controller version caches when missing, then fetch the selected data
   collection for the selected site.

Remote calls happen strictly in the order login, site list, version
detection, action; each at most once per request.
"""

import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from unifi_stats.config import Settings
from unifi_stats.exceptions import ControllerAuthError, ControllerError
from unifi_stats.schemas import (
    UNDETECTED_VERSION,
    BrowserView,
    ControllerOption,
    ControllerProfile,
    LoginForm,
    RequestTiming,
    SelectionRequest,
    SessionState,
    Site,
    UsageFilter,
)
from unifi_stats.services.actions import DEFAULT_ACTION, resolve_action
from unifi_stats.services.controller_client import ClientFactory
from unifi_stats.services.formatter import format_output
from unifi_stats.services.registry import (
    Registry,
    apply_login_overrides,
    resolve_controller,
)
from unifi_stats.services.session_store import apply_selection
from unifi_stats.services.usage_service import build_usage_report

logger = logging.getLogger(__name__)

SELECT_CONTROLLER_MESSAGE = "Please select a controller from the Controllers dropdown menu."
NO_SITES_MESSAGE = (
    "No sites available. This is probably caused by incorrect access rights in the "
    "UniFi controller, or the controller is not accepting connections. Please check "
    "your credentials and/or your server error logs and try again."
)
SESSION_EXPIRED_MESSAGE = (
    "The controller session has expired. Reload the page to log in again."
)


def login_prompt(profile: ControllerProfile) -> str:
    """Alert text asking the user to log in to ``profile``."""
    message = f"Please login to {profile.name}"
    if profile.user:
        message += f" with username {profile.user}"
    return message + "."


def missing_credentials(profile: ControllerProfile) -> List[str]:
    """Login form fields still to be filled in for ``profile``."""
    fields = []
    if not profile.user:
        fields.append("controller_user")
    if not profile.password:
        fields.append("controller_password")
    if not profile.url:
        fields.append("controller_url")
    return fields


def sort_sites(sites: List[Dict[str, Any]]) -> List[Site]:
    """Sites ordered by description; ties keep the controller's order."""
    usable = [
        {**s, "desc": str(s.get("desc") or "")}
        for s in sites
        if isinstance(s, dict) and "name" in s
    ]
    return [Site.model_validate(s) for s in sorted(usable, key=lambda s: s["desc"])]


def extract_version(sysinfo: Any) -> str:
    """Controller version from a ``stat_sysinfo`` result, or the undetected sentinel."""
    if isinstance(sysinfo, list) and sysinfo and isinstance(sysinfo[0], dict):
        version = sysinfo[0].get("version")
        if version:
            return str(version)
    return UNDETECTED_VERSION


def count_objects(data: Any) -> Optional[int]:
    if isinstance(data, list) and data:
        return len(data)
    return None


class BrowserService:
    """Runs the selection state machine for one request at a time.

    Args:
        config: Application settings (defaults, usage time zone).
        registry: Configured controllers, or None in single-controller mode.
        fallback_profile: The implicit profile used in single-controller mode.
        client_factory: Builds a controller client for (profile, site_id, cookie).
    """

    def __init__(
        self,
        config: Settings,
        registry: Optional[Registry],
        fallback_profile: ControllerProfile,
        client_factory: ClientFactory,
    ):
        self.config = config
        self.registry = registry
        self.fallback_profile = fallback_profile
        self.client_factory = client_factory

    def handle(
        self,
        state: SessionState,
        selection: SelectionRequest,
        now: datetime,
        login_form: Optional[LoginForm] = None,
        usage_filter: Optional[UsageFilter] = None,
    ) -> BrowserView:
        """Process one request against ``state``, which is updated in place.

        Raises:
            ControllerConfigurationError: If the requested controller cannot be resolved.
        """
        started = time.perf_counter()
        resolve_controller(
            state, self.registry, selection.controller_id, self.fallback_profile
        )
        apply_login_overrides(state, login_form)
        profile = state.controller
        apply_selection(
            state,
            selection,
            self.config.DEFAULT_OUTPUT_FORMAT,
            self.config.DEFAULT_THEME,
        )

        view = self._base_view(state)

        if self.registry is not None and profile is None:
            view.alert_message = SELECT_CONTROLLER_MESSAGE
            return self._finish(view, started, started)

        if state.auth_cookie is None and not profile.credentials_complete():
            view.show_login = True
            view.alert_message = login_prompt(profile)
            view.missing_credentials = missing_credentials(profile)
            return self._finish(view, started, started)

        client = self.client_factory(profile, state.site_id, state.auth_cookie)
        try:
            return self._authenticated(
                client, state, view, usage_filter or UsageFilter(), now, started
            )
        finally:
            close = getattr(client, "close", None)
            if close is not None:
                close()

    def _base_view(self, state: SessionState) -> BrowserView:
        profile = state.controller
        controllers = []
        if self.registry is not None:
            controllers = [
                ControllerOption(id=key, name=p.name) for key, p in self.registry.items()
            ]
        return BrowserView(
            controllers=controllers,
            controller_id=state.controller_id,
            controller_name=profile.name if profile else None,
            controller_user=profile.user if profile else None,
            controller_url=profile.url if profile else None,
            controller_version=state.detected_controller_version,
            site_id=state.site_id,
            site_name=state.site_name,
            action=state.action,
            output_format=state.output_format or self.config.DEFAULT_OUTPUT_FORMAT,
            theme=state.theme or self.config.DEFAULT_THEME,
            app_version=self.config.APP_VERSION,
        )

    def _authenticated(
        self,
        client: Any,
        state: SessionState,
        view: BrowserView,
        usage_filter: UsageFilter,
        now: datetime,
        started: float,
    ) -> BrowserView:
        if state.auth_cookie is None:
            try:
                client.login()
            except ControllerError as e:
                logger.warning("Login to %s failed: %s", state.controller.url, e)
                view.alert_message = f"{e} Please check your credentials and try again."
                view.sites = []
                view.controller_version = UNDETECTED_VERSION
                return self._finish(view, started, time.perf_counter())
            state.auth_cookie = client.get_cookie()

        try:
            sites, sites_alert = self._refresh_sites(client, state)
            view.sites = sort_sites(sites)
            view.controller_version = self._refresh_version(client, state)
            if sites_alert:
                view.alert_message = sites_alert
            logged_in = time.perf_counter()

            if state.site_id:
                self._dispatch(client, state, view, usage_filter, now)
        except ControllerAuthError as e:
            logger.info("Controller rejected the cached session: %s", e)
            state.auth_cookie = None
            view.alert_message = SESSION_EXPIRED_MESSAGE
            return self._finish(view, started, time.perf_counter())

        return self._finish(view, started, logged_in)

    def _refresh_sites(
        self, client: Any, state: SessionState
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        if state.sites:
            return state.sites, None
        try:
            sites = client.list_sites()
        except ControllerAuthError:
            raise
        except ControllerError as e:
            logger.warning("Fetching the site list failed: %s", e)
            return [], NO_SITES_MESSAGE
        if not isinstance(sites, list) or not sites:
            logger.warning("Controller returned no usable site list")
            return [], NO_SITES_MESSAGE
        logger.info("Cached %d sites for controller %s", len(sites), state.controller.name)
        state.sites = sites
        return sites, None

    def _refresh_version(self, client: Any, state: SessionState) -> str:
        cached = state.detected_controller_version
        if cached is not None and cached != UNDETECTED_VERSION:
            return cached
        try:
            version = extract_version(client.stat_sysinfo())
        except ControllerAuthError:
            raise
        except ControllerError as e:
            logger.warning("Controller version detection failed: %s", e)
            version = UNDETECTED_VERSION
        state.detected_controller_version = version
        return version

    def _dispatch(
        self,
        client: Any,
        state: SessionState,
        view: BrowserView,
        usage_filter: UsageFilter,
        now: datetime,
    ) -> None:
        action_id, action = resolve_action(state.action)
        view.selection = action.label
        try:
            data = action.call(client)
        except ControllerAuthError:
            raise
        except ControllerError as e:
            logger.warning("Action %s failed: %s", action_id, e)
            view.alert_message = f"Fetching '{action.label}' failed: {e}"
            return

        view.objects_count = count_objects(data)
        view.output = format_output(view.output_format, data)
        if action_id == DEFAULT_ACTION:
            view.usage = build_usage_report(
                data,
                usage_filter,
                now,
                tz_name=self.config.USAGE_TIMEZONE,
                default_days=self.config.DEFAULT_USAGE_DAYS,
            )

    @staticmethod
    def _finish(view: BrowserView, started: float, logged_in: float) -> BrowserView:
        finished = time.perf_counter()
        view.timing = RequestTiming(
            login_seconds=round(logged_in - started, 6),
            load_seconds=round(finished - logged_in, 6),
            total_seconds=round(finished - started, 6),
        )
        return view
