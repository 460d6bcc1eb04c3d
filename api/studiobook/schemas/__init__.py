"""Pydantic schemas for API serialisation."""

from datetime import date, datetime, time
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from studiobook.models.booking import CancellationReason
from studiobook.models.member import MemberPlan

# --- Auth ---


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    role: str
    line_user_id: str | None


# --- Catalog ---


class MenuOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    duration_minutes: int
    price: int


class MenuCreate(BaseModel):
    name: str
    duration_minutes: int = Field(gt=0)
    price: int = Field(default=0, ge=0)


class StaffOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    color: str | None
    unit_price: int
    is_active: bool


class StaffCreate(BaseModel):
    name: str
    color: str | None = None
    unit_price: int = Field(default=0, ge=0)


# --- Shifts ---


class ShiftIn(BaseModel):
    day_of_week: int = Field(ge=0, le=6)  # 0=Mon
    start_time: time
    end_time: time

    @model_validator(mode="after")
    def _ordered(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ShiftOut(ShiftIn):
    model_config = ConfigDict(from_attributes=True)

    id: int


class ShiftsReplace(BaseModel):
    shifts: list[ShiftIn]


class OverrideIn(BaseModel):
    """Hours for one date. Omit both times to close the trainer for the day."""

    override_date: date
    start_time: time | None = None
    end_time: time | None = None

    @model_validator(mode="after")
    def _both_or_neither(self):
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("start_time and end_time must be given together")
        if self.start_time is not None and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class OverrideOut(OverrideIn):
    model_config = ConfigDict(from_attributes=True)

    id: int
    staff_id: int


# --- Availability ---


class SlotOut(BaseModel):
    time: str  # "HH:MM"
    staff_ids: list[int]
    is_available: bool


class AvailabilityOut(BaseModel):
    date: date
    service_menu_id: int
    duration_minutes: int
    slots: list[SlotOut]


# --- Booking ---


class BookingCreate(BaseModel):
    service_menu_id: int
    start: datetime  # naive values are studio local time
    staff_id: int | None = None
    notes: str | None = None


class BookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    member_id: int
    staff_id: int
    service_menu_id: int | None
    booking_date: date
    start_time: time
    end_time: time
    duration_minutes: int
    status: str
    cancellation_reason: str | None
    cancelled_at: datetime | None
    paid_from_prepaid: int
    notes: str | None


class CancelRequest(BaseModel):
    reason: CancellationReason | None = None


class CancellationOut(BaseModel):
    booking: BookingOut
    relieved: bool
    refunded: int


# --- Members ---


class MemberCreate(BaseModel):
    name: str
    kana: str | None = None
    gender: str | None = None
    phone: str | None = None
    date_of_birth: date | None = None
    join_date: date | None = None
    plan: MemberPlan = MemberPlan.STANDARD
    contracted_sessions: int = Field(default=0, ge=0)
    prepaid_balance: int = Field(default=0, ge=0)
    main_trainer_id: int | None = None
    user_id: int | None = None


class MemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int | None
    name: str
    kana: str | None
    gender: str | None
    phone: str | None
    date_of_birth: date | None
    join_date: date | None
    plan: str
    contracted_sessions: int
    prepaid_balance: int
    main_trainer_id: int | None


class MainTrainerIn(BaseModel):
    staff_id: int | None


class MemberProfileUpdate(BaseModel):
    """Partial profile edit; only the fields sent are changed."""

    name: str | None = Field(default=None, min_length=1)
    kana: str | None = None
    gender: str | None = None
    phone: str | None = None
    date_of_birth: date | None = None
    join_date: date | None = None

    @model_validator(mode="after")
    def _name_not_cleared(self):
        if "name" in self.model_fields_set and self.name is None:
            raise ValueError("name cannot be cleared")
        return self


class PlanChangeIn(BaseModel):
    plan: MemberPlan


class PrepaidTransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    booking_id: int
    amount: int
    balance_after: int
    transaction_type: str
    description: str
    created_at: datetime


class PrepaidBalanceOut(BaseModel):
    member_id: int
    balance: int
    transactions: list[PrepaidTransactionOut]


# --- Chat ---


class ChatMessageIn(BaseModel):
    """Either text, or a LINE sticker/image message object."""

    text: str | None = None
    message: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _exactly_one(self):
        if (self.text is None) == (self.message is None):
            raise ValueError("Provide exactly one of text or message")
        return self

    @property
    def payload(self) -> str | dict[str, Any]:
        return self.text if self.text is not None else self.message


class ChatMessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    sender: str
    content: str
    is_read: bool
    created_at: datetime


class UnreadCountOut(BaseModel):
    count: int


# --- Cron ---


class ReminderDetail(BaseModel):
    booking_id: int
    member_id: int
    status: str


class ReminderRunOut(BaseModel):
    date: date
    processed: int
    sent: int
    details: list[ReminderDetail]
