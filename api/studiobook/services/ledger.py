"""Prepaid balance ledger.

The balance is cached on Member.prepaid_balance for fast reads; the audit
trail is the prepaid_transactions table. The balance moves only when a
booking is committed (debit) or qualifyingly cancelled (refund of exactly
what that booking took), and always through _apply so the cache and the
trail stay in step.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studiobook.models.booking import Booking
from studiobook.models.ledger import PrepaidTransaction, TransactionType
from studiobook.models.member import Member

logger = logging.getLogger(__name__)


async def get_prepaid_balance(db: AsyncSession, member_id: int) -> int:
    """Read the cached prepaid balance in yen (0 for unknown members)."""
    result = await db.execute(select(Member.prepaid_balance).where(Member.id == member_id))
    balance = result.scalar_one_or_none()
    return balance or 0


async def _apply(
    db: AsyncSession,
    member_id: int,
    amount: int,
    txn_type: TransactionType,
    booking_id: int,
    description: str,
) -> PrepaidTransaction:
    """Core balance mutation: adjust the balance and record a transaction.

    Uses SELECT ... FOR UPDATE on the member row to serialize concurrent
    bookings and cancellations by the same member.
    """
    result = await db.execute(
        select(Member)
        .where(Member.id == member_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    member = result.scalar_one()

    new_balance = member.prepaid_balance + amount
    if new_balance < 0:
        raise ValueError(f"Prepaid balance for member {member_id} would become negative ({new_balance})")
    member.prepaid_balance = new_balance

    txn = PrepaidTransaction(
        member_id=member_id,
        booking_id=booking_id,
        amount=amount,
        balance_after=new_balance,
        transaction_type=txn_type,
        description=description,
    )
    db.add(txn)
    await db.flush()
    logger.info("Prepaid %s of %d for member %d (balance now %d)", txn_type.value, amount, member_id, new_balance)
    return txn


async def debit_for_booking(db: AsyncSession, member: Member, unit_price: int, booking_id: int) -> int:
    """Debit up to unit_price from a prepaid member's balance.

    Returns the amount actually debited: min(balance, unit_price), or 0 for
    plans that are not prepaid.
    """
    if not member.plan_rules.prepaid or unit_price <= 0:
        return 0

    balance = await get_prepaid_balance(db, member.id)
    debit = min(balance, unit_price)
    if debit <= 0:
        return 0

    await _apply(
        db,
        member.id,
        amount=-debit,
        txn_type=TransactionType.BOOKING_DEBIT,
        booking_id=booking_id,
        description=f"Payment for booking #{booking_id}",
    )
    return debit


async def refund_for_cancellation(db: AsyncSession, booking: Booking) -> int:
    """Credit back what this booking took from the balance, never the current price."""
    if booking.paid_from_prepaid <= 0:
        return 0

    await _apply(
        db,
        booking.member_id,
        amount=booking.paid_from_prepaid,
        txn_type=TransactionType.CANCELLATION_REFUND,
        booking_id=booking.id,
        description=f"Refund for cancelled booking #{booking.id}",
    )
    return booking.paid_from_prepaid


async def list_transactions(db: AsyncSession, member_id: int, limit: int = 50) -> list[PrepaidTransaction]:
    """Most recent balance movements first."""
    result = await db.execute(
        select(PrepaidTransaction)
        .where(PrepaidTransaction.member_id == member_id)
        .order_by(PrepaidTransaction.created_at.desc(), PrepaidTransaction.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
