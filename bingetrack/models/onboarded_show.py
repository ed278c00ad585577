from sqlalchemy import String, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from bingetrack.database import Base


class OnboardedShow(Base):
    """A show picked by a user during onboarding."""

    __tablename__ = "onboarded_shows"
    __table_args__ = (
        UniqueConstraint("user_id", "show_id", name="uq_onboarded_shows_user_show"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    show_id: Mapped[int] = mapped_column(Integer)
