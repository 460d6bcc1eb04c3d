"""Staff (trainers) and their working hours.

Shift = a recurring weekly working interval.
ShiftOverride = a specific date's hours, replacing the weekly shifts for that
date. A row with no times marks the trainer closed for the day.
"""

from datetime import date, time

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, SmallInteger, String, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studiobook.models.base import Base, TimestampMixin


class Staff(TimestampMixin, Base):
    __tablename__ = "staff"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str | None] = mapped_column(String(20))  # calendar colour
    unit_price: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # yen per session
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    shifts: Mapped[list["Shift"]] = relationship(
        back_populates="staff", lazy="raise", cascade="all, delete-orphan"
    )
    shift_overrides: Mapped[list["ShiftOverride"]] = relationship(
        back_populates="staff", lazy="raise", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Staff {self.name}>"


class Shift(TimestampMixin, Base):
    __tablename__ = "shifts"

    id: Mapped[int] = mapped_column(primary_key=True)
    staff_id: Mapped[int] = mapped_column(ForeignKey("staff.id"), nullable=False)
    day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False)  # 0=Mon..6=Sun
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    staff: Mapped["Staff"] = relationship(back_populates="shifts")

    __table_args__ = (Index("ix_shifts_staff_dow", "staff_id", "day_of_week"),)

    def __repr__(self) -> str:
        return f"<Shift staff={self.staff_id} dow={self.day_of_week} {self.start_time}-{self.end_time}>"


class ShiftOverride(TimestampMixin, Base):
    __tablename__ = "shift_overrides"

    id: Mapped[int] = mapped_column(primary_key=True)
    staff_id: Mapped[int] = mapped_column(ForeignKey("staff.id"), nullable=False)
    override_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time | None] = mapped_column(Time)
    end_time: Mapped[time | None] = mapped_column(Time)

    staff: Mapped["Staff"] = relationship(back_populates="shift_overrides")

    __table_args__ = (Index("ix_shift_overrides_staff_date", "staff_id", "override_date"),)

    @property
    def is_closed(self) -> bool:
        return self.start_time is None or self.end_time is None

    def __repr__(self) -> str:
        hours = "closed" if self.is_closed else f"{self.start_time}-{self.end_time}"
        return f"<ShiftOverride staff={self.staff_id} {self.override_date} {hours}>"
