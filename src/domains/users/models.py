"""User profile models."""
from datetime import date

from sqlalchemy import Boolean, Date, String
from sqlalchemy.orm import Mapped, mapped_column

from src.config.database import Base
from src.core.models import TimestampMixin, UUIDMixin


class Profile(Base, UUIDMixin, TimestampMixin):
    """Profile row for a user of the tracker.

    Accounts themselves live with the auth provider; the profile shares the
    account id and carries the per-user reminder preferences.
    """

    __tablename__ = "profiles"

    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Daily mindset journal prompt
    mindset_reminder_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    mindset_reminder_time: Mapped[str | None] = mapped_column(String(8), nullable=True)  # "HH:MM"
    mindset_last_notified: Mapped[date | None] = mapped_column(Date, nullable=True)
