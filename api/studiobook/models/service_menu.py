"""Service catalog: what can be booked and how long it occupies a trainer."""

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from studiobook.models.base import Base, TimestampMixin


class ServiceMenu(TimestampMixin, Base):
    __tablename__ = "service_menus"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # yen, list price
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<ServiceMenu {self.name} {self.duration_minutes}min>"
