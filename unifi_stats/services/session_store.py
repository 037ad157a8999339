"""Per-user session store with idle expiry.

Each browser session is one row in ``browser_sessions`` holding the
JSON-serialized SessionState. Every load stamps the last-activity time; a
session idle for longer than the configured timeout is wiped before the
request is served, so stale cookies and credentials never outlive it.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from unifi_stats.models import BrowserSession
from unifi_stats.schemas import SelectionRequest, SessionState

logger = logging.getLogger(__name__)


class SessionStore:
    """Load, save and reset SessionState records keyed by session id."""

    def __init__(self, db: Session, timeout_seconds: int):
        self.db = db
        self.timeout_seconds = timeout_seconds

    def load(self, session_id: str, now: datetime) -> SessionState:
        """Return the state for ``session_id``, expiring it first if idle too long.

        Args:
            session_id: Opaque session identifier from the cookie.
            now: Current time; its epoch value becomes the new last-activity stamp.

        Returns:
            The stored SessionState, or an empty one for new/expired sessions.
        """
        stamp = now.timestamp()
        row = self.db.get(BrowserSession, session_id)
        state = SessionState()
        if row is not None:
            if stamp - row.last_activity > self.timeout_seconds:
                logger.info("Session %s idle for too long, discarding", session_id[:8])
                self.db.delete(row)
                self.db.commit()
            else:
                state = SessionState.model_validate_json(row.data)
        state.last_activity = stamp
        return state

    def save(self, session_id: str, state: SessionState) -> None:
        """Persist ``state`` under ``session_id``."""
        row = self.db.get(BrowserSession, session_id)
        if row is None:
            row = BrowserSession(session_id=session_id)
            self.db.add(row)
        row.data = state.model_dump_json()
        row.last_activity = state.last_activity or 0.0
        self.db.commit()

    def reset(self, session_id: str) -> SessionState:
        """Wipe the session unconditionally and return a fresh, empty state."""
        row = self.db.get(BrowserSession, session_id)
        if row is not None:
            self.db.delete(row)
            self.db.commit()
        logger.info("Session %s reset", session_id[:8])
        return SessionState()

    def purge_expired(self, now: datetime) -> int:
        """Delete every session idle for longer than the timeout; return how many."""
        cutoff = now.timestamp() - self.timeout_seconds
        purged = (
            self.db.query(BrowserSession)
            .filter(BrowserSession.last_activity < cutoff)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return purged


def apply_selection(
    state: SessionState,
    request: SelectionRequest,
    default_output_format: str,
    default_theme: str,
) -> None:
    """Merge explicit request values into the session.

    An explicit value overwrites and is persisted; an absent one keeps the
    stored value; a never-set value takes its default. Site selection only
    applies once a controller is resolved, and never in the request that
    switches controllers.
    """
    if state.controller is not None and request.controller_id is None:
        if request.site_id is not None:
            state.site_id = request.site_id
            state.site_name = request.site_name or ""

    if request.action is not None:
        state.action = request.action

    if request.output_format is not None:
        state.output_format = request.output_format
    elif state.output_format is None:
        state.output_format = default_output_format

    if request.theme is not None:
        state.theme = request.theme
    elif state.theme is None:
        state.theme = default_theme

