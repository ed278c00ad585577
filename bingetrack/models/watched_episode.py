from sqlalchemy import String, Integer, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from bingetrack.database import Base


class WatchedEpisode(Base):
    """One watch event for an episode of a show, as logged by a user."""

    __tablename__ = "watched_episodes"
    __table_args__ = (
        Index("ix_watched_episodes_user_show", "user_id", "show_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128))
    show_id: Mapped[int] = mapped_column(Integer)
    season_number: Mapped[int] = mapped_column(Integer)
    episode_number: Mapped[int] = mapped_column(Integer)
    # Stored as written by the client (ISO-8601); parsed on read
    watched_at: Mapped[str] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
