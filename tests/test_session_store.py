"""Tests for the session store: persistence, idle expiry, reset and field precedence."""

from datetime import datetime, timedelta, timezone

from unifi_stats.models import BrowserSession
from unifi_stats.schemas import ControllerProfile, SelectionRequest, SessionState
from unifi_stats.services.session_store import SessionStore, apply_selection

NOW = datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc)
SESSION_ID = "3f2a9c0d6b1e4f7a8c5d2e9b0a1f6c3d"


class TestSessionStore:
    """Tests for SessionStore load/save/reset."""

    def test_new_session_is_empty(self, test_session):
        store = SessionStore(test_session, timeout_seconds=3600)
        state = store.load(SESSION_ID, NOW)
        assert state.controller is None
        assert state.last_activity == NOW.timestamp()

    def test_round_trip(self, test_session):
        store = SessionStore(test_session, timeout_seconds=3600)
        state = store.load(SESSION_ID, NOW)
        state.site_id = "default"
        state.auth_cookie = "cookie"
        store.save(SESSION_ID, state)

        loaded = store.load(SESSION_ID, NOW + timedelta(minutes=5))
        assert loaded.site_id == "default"
        assert loaded.auth_cookie == "cookie"

    def test_load_stamps_last_activity(self, test_session):
        store = SessionStore(test_session, timeout_seconds=3600)
        store.save(SESSION_ID, store.load(SESSION_ID, NOW))
        later = NOW + timedelta(minutes=50)
        state = store.load(SESSION_ID, later)
        store.save(SESSION_ID, state)
        row = test_session.get(BrowserSession, SESSION_ID)
        assert row.last_activity == later.timestamp()

    def test_idle_session_expires(self, test_session):
        store = SessionStore(test_session, timeout_seconds=3600)
        state = store.load(SESSION_ID, NOW)
        state.auth_cookie = "cookie"
        store.save(SESSION_ID, state)

        expired = store.load(SESSION_ID, NOW + timedelta(seconds=3601))
        assert expired.auth_cookie is None
        assert test_session.get(BrowserSession, SESSION_ID) is None

    def test_activity_within_timeout_keeps_session(self, test_session):
        store = SessionStore(test_session, timeout_seconds=3600)
        state = store.load(SESSION_ID, NOW)
        state.auth_cookie = "cookie"
        store.save(SESSION_ID, state)

        kept = store.load(SESSION_ID, NOW + timedelta(seconds=3600))
        assert kept.auth_cookie == "cookie"

    def test_long_timeout(self, test_session):
        store = SessionStore(test_session, timeout_seconds=604800)
        state = store.load(SESSION_ID, NOW)
        state.site_id = "default"
        store.save(SESSION_ID, state)
        assert store.load(SESSION_ID, NOW + timedelta(days=6)).site_id == "default"

    def test_reset_wipes_session(self, test_session):
        store = SessionStore(test_session, timeout_seconds=3600)
        state = store.load(SESSION_ID, NOW)
        state.site_id = "default"
        store.save(SESSION_ID, state)

        fresh = store.reset(SESSION_ID)
        assert fresh == SessionState()
        assert test_session.get(BrowserSession, SESSION_ID) is None

    def test_reset_unknown_session(self, test_session):
        store = SessionStore(test_session, timeout_seconds=3600)
        assert store.reset("unknown") == SessionState()

    def test_sessions_are_isolated(self, test_session):
        store = SessionStore(test_session, timeout_seconds=3600)
        state = store.load(SESSION_ID, NOW)
        state.site_id = "default"
        store.save(SESSION_ID, state)
        assert store.load("other-session", NOW).site_id == ""


class TestSelectController:
    """Tests for the controller-switch cascade on SessionState."""

    def test_clears_all_controller_bound_fields(self):
        state = SessionState(
            controller_id="home",
            site_id="default",
            site_name="Main",
            action="list_clients",
            sites=[{"name": "default"}],
            detected_controller_version="7.4.162",
            auth_cookie="cookie",
            output_format="repr",
            theme="darkly",
        )
        state.select_controller("office", ControllerProfile(id="office", name="Office"))
        assert state.controller_id == "office"
        assert state.controller.name == "Office"
        assert (state.site_id, state.site_name, state.action) == ("", "", "")
        assert state.sites is None
        assert state.detected_controller_version is None
        assert state.auth_cookie is None
        assert state.output_format == "repr"
        assert state.theme == "darkly"


class TestApplySelection:
    """Tests for request/session field precedence."""

    def _state(self, **fields):
        return SessionState(controller=ControllerProfile(), **fields)

    def test_first_request_gets_defaults(self):
        state = self._state()
        apply_selection(state, SelectionRequest(), "json", "bootstrap")
        assert state.output_format == "json"
        assert state.theme == "bootstrap"
        assert state.site_id == ""
        assert state.action == ""

    def test_explicit_values_overwrite(self):
        state = self._state(site_id="a", site_name="A", action="list_users", theme="cosmo")
        apply_selection(
            state,
            SelectionRequest(site_id="b", site_name="B", action="list_devices", theme="slate"),
            "json",
            "bootstrap",
        )
        assert (state.site_id, state.site_name) == ("b", "B")
        assert state.action == "list_devices"
        assert state.theme == "slate"

    def test_absent_values_keep_stored(self):
        state = self._state(site_id="a", site_name="A", output_format="repr", theme="cosmo")
        apply_selection(state, SelectionRequest(), "json", "bootstrap")
        assert state.site_id == "a"
        assert state.output_format == "repr"
        assert state.theme == "cosmo"

    def test_empty_action_is_an_explicit_value(self):
        state = self._state(action="list_users")
        apply_selection(state, SelectionRequest(action=""), "json", "bootstrap")
        assert state.action == ""

    def test_site_requires_controller(self):
        state = SessionState()
        apply_selection(state, SelectionRequest(site_id="a"), "json", "bootstrap")
        assert state.site_id == ""


class TestPurgeExpired:
    """Tests for the startup purge of idle sessions."""

    def test_only_idle_sessions_removed(self, test_session):
        store = SessionStore(test_session, timeout_seconds=3600)
        store.save("old", store.load("old", NOW - timedelta(hours=2)))
        store.save("recent", store.load("recent", NOW - timedelta(minutes=10)))

        assert store.purge_expired(NOW) == 1
        assert test_session.get(BrowserSession, "old") is None
        assert test_session.get(BrowserSession, "recent") is not None

    def test_nothing_to_purge(self, test_session):
        assert SessionStore(test_session, timeout_seconds=3600).purge_expired(NOW) == 0
