"""SQLAlchemy ORM models for the UniFi Stats session store."""

from sqlalchemy import Column, Float, Index, String, Text

from unifi_stats.database import Base


class BrowserSession(Base):
    """Persisted selection state for one browser session.

    Attributes:
        session_id: Opaque identifier carried in the session cookie.
        data: JSON-serialized SessionState (selection and cached remote results).
        last_activity: Epoch seconds of the most recent request in this session.
    """

    __tablename__ = "browser_sessions"

    session_id = Column(String(64), primary_key=True)
    data = Column(Text, nullable=False, default="{}")
    last_activity = Column(Float, nullable=False)

    __table_args__ = (Index("idx_last_activity", "last_activity"),)

    def __repr__(self):
        return (
            f"<BrowserSession(session_id={self.session_id!r}, "
            f"last_activity={self.last_activity})>"
        )
