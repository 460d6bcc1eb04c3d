"""All models imported here so metadata.create_all sees every table."""

from studiobook.models.base import Base
from studiobook.models.booking import Booking, BookingStatus, CancellationReason
from studiobook.models.chat import ChatMessage, MessageSender
from studiobook.models.ledger import PrepaidTransaction, TransactionType
from studiobook.models.member import Member, MemberPlan, User, UserRole
from studiobook.models.service_menu import ServiceMenu
from studiobook.models.staff import Shift, ShiftOverride, Staff

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Member",
    "MemberPlan",
    "Staff",
    "Shift",
    "ShiftOverride",
    "ServiceMenu",
    "Booking",
    "BookingStatus",
    "CancellationReason",
    "PrepaidTransaction",
    "TransactionType",
    "ChatMessage",
    "MessageSender",
]
