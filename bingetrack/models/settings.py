from sqlalchemy import Boolean, Integer
from sqlalchemy.orm import Mapped, mapped_column
from bingetrack.database import Base


class AppSettings(Base):
    """Stores runtime-editable application settings."""

    __tablename__ = "app_settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    stale_after_days: Mapped[int] = mapped_column(Integer, default=30)
    lenient_timestamps: Mapped[bool] = mapped_column(Boolean, default=False)
    prefetch_seasons: Mapped[bool] = mapped_column(Boolean, default=True)
