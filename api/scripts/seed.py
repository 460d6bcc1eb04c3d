"""Seed the database with studio test data.

Run with: python -m scripts.seed
Creates two trainers with weekly shifts, the service menu, and test users.
"""

import asyncio
from datetime import time

from sqlalchemy import select

from studiobook.core.auth import hash_password
from studiobook.core.database import async_session_factory, engine
from studiobook.models import Base, MemberPlan, ServiceMenu, Shift, Staff, User, UserRole
from studiobook.services.members import create_member

# Weekly hours per trainer: day_of_week (0=Mon) -> (start, end)
TRAINERS = [
    {
        "name": "Yuji",
        "color": "#2b6cb0",
        "unit_price": 6050,
        "hours": {dow: (time(10, 0), time(22, 0)) for dow in range(0, 5)},
    },
    {
        "name": "Risa",
        "color": "#d53f8c",
        "unit_price": 4950,
        "hours": {dow: (time(10, 0), time(18, 0)) for dow in (1, 2, 3, 5, 6)},
    },
]

MENUS = [
    {"name": "Personal training 60", "duration_minutes": 60, "price": 6050},
    {"name": "Personal training 90", "duration_minutes": 90, "price": 8800},
    {"name": "Stretch 30", "duration_minutes": 30, "price": 3300},
]


async def seed():
    # Create tables (in dev; production uses migrations)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as db:
        # Check if already seeded
        result = await db.execute(select(User).where(User.email == "admin@studiobook.test"))
        if result.scalar_one_or_none():
            print("Database already seeded, skipping.")
            return

        trainers = []
        for data in TRAINERS:
            hours = data.pop("hours")
            staff = Staff(**data)
            db.add(staff)
            await db.flush()
            db.add_all(
                Shift(staff_id=staff.id, day_of_week=dow, start_time=start, end_time=end)
                for dow, (start, end) in hours.items()
            )
            trainers.append(staff)

        db.add_all(ServiceMenu(**menu) for menu in MENUS)

        admin = User(
            email="admin@studiobook.test",
            hashed_password=hash_password("admin123"),
            name="Studio Admin",
            role=UserRole.ADMIN,
        )
        member_user = User(
            email="member@example.com",
            hashed_password=hash_password("member123"),
            name="Test Member",
        )
        prepaid_user = User(
            email="prepaid@example.com",
            hashed_password=hash_password("member123"),
            name="Prepaid Member",
        )
        db.add_all([admin, member_user, prepaid_user])
        await db.flush()

        await create_member(
            db,
            name=member_user.name,
            user_id=member_user.id,
            plan=MemberPlan.STANDARD,
            contracted_sessions=4,
            main_trainer_id=trainers[0].id,
        )
        await create_member(
            db,
            name=prepaid_user.name,
            user_id=prepaid_user.id,
            plan=MemberPlan.DIGITAL_PREPAID,
            contracted_sessions=8,
            prepaid_balance=30000,
        )

        await db.commit()

        print("Seeded: StudioBook")
        print(f"  {len(TRAINERS)} trainers")
        print(f"  {len(MENUS)} service menus")
        print("  3 test users:")
        print("    admin@studiobook.test / admin123")
        print("    member@example.com / member123 (STANDARD, 4 sessions)")
        print("    prepaid@example.com / member123 (DIGITAL_PREPAID, 30000 yen)")


if __name__ == "__main__":
    asyncio.run(seed())
