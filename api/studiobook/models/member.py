"""User and member models.

User = a login identity (member, trainer or studio admin).
Member = the studio's customer record: plan, monthly quota, prepaid balance.
A member may exist without a login (records imported by the front desk).
"""

import enum
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, Date, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studiobook.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from studiobook.models.booking import Booking
    from studiobook.models.staff import Staff


class UserRole(enum.StrEnum):
    MEMBER = "member"
    TRAINER = "trainer"
    ADMIN = "admin"


class MemberPlan(enum.StrEnum):
    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"
    LIGHT = "LIGHT"
    DIGITAL_PREPAID = "DIGITAL_PREPAID"


@dataclass(frozen=True)
class PlanRules:
    label: str
    limit_days: int  # how far ahead a member on this plan may book
    prepaid: bool  # bookings are paid from prepaid_balance
    allows_main_trainer: bool


PLAN_RULES: dict[MemberPlan, PlanRules] = {
    MemberPlan.STANDARD: PlanRules("Standard", limit_days=14, prepaid=False, allows_main_trainer=True),
    MemberPlan.PREMIUM: PlanRules("Premium", limit_days=30, prepaid=False, allows_main_trainer=True),
    MemberPlan.LIGHT: PlanRules("Light", limit_days=7, prepaid=False, allows_main_trainer=False),
    MemberPlan.DIGITAL_PREPAID: PlanRules("Digital prepaid", limit_days=14, prepaid=True, allows_main_trainer=False),
}


def get_plan_rules(plan: MemberPlan | str | None) -> PlanRules:
    """Rules for a plan; unknown or missing plans fall back to STANDARD."""
    try:
        return PLAN_RULES[MemberPlan(plan)]
    except ValueError:
        return PLAN_RULES[MemberPlan.STANDARD]


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(254), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str | None] = mapped_column(String(200))
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", values_callable=lambda e: [x.value for x in e]),
        default=UserRole.MEMBER,
        nullable=False,
    )

    # LINE Messaging API destination, set when the user links their LINE account
    line_user_id: Mapped[str | None] = mapped_column(String(64), index=True)

    member: Mapped["Member | None"] = relationship(back_populates="user", uselist=False)

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class Member(TimestampMixin, Base):
    __tablename__ = "members"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), unique=True)

    # Profile
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    kana: Mapped[str | None] = mapped_column(String(100))
    gender: Mapped[str | None] = mapped_column(String(20))
    phone: Mapped[str | None] = mapped_column(String(50))
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    join_date: Mapped[date | None] = mapped_column(Date)

    # Contract
    plan: Mapped[MemberPlan] = mapped_column(
        Enum(MemberPlan, name="member_plan", values_callable=lambda e: [x.value for x in e]),
        default=MemberPlan.STANDARD,
        nullable=False,
    )
    contracted_sessions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # monthly quota
    prepaid_balance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # yen

    # Weak reference: the trainer is looked up, never owned
    main_trainer_id: Mapped[int | None] = mapped_column(ForeignKey("staff.id"))

    user: Mapped["User | None"] = relationship(back_populates="member")
    main_trainer: Mapped["Staff | None"] = relationship(lazy="raise")
    bookings: Mapped[list["Booking"]] = relationship(back_populates="member", lazy="raise")

    __table_args__ = (
        CheckConstraint("prepaid_balance >= 0", name="ck_members_prepaid_non_negative"),
        CheckConstraint("contracted_sessions >= 0", name="ck_members_sessions_non_negative"),
    )

    @property
    def plan_rules(self) -> PlanRules:
        return get_plan_rules(self.plan)

    def __repr__(self) -> str:
        return f"<Member {self.name} plan={self.plan}>"
