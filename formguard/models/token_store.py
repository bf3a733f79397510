from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text

from formguard.database import Base


class TokenStoreRecord(Base):
    """Serialized token store of one session, one row per store name."""

    __tablename__ = "csrf_token_stores"

    session_id = Column(String(255), primary_key=True)
    name = Column(String(100), primary_key=True)
    payload = Column(Text, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,  # Index for stale session cleanup
    )

    def __repr__(self):
        return (
            f"<TokenStoreRecord(session_id='{self.session_id[:8]}...', "
            f"name='{self.name}', version={self.version})>"
        )
