"""
Database seeding script for development users.

Creates one ADMIN, one COURIER and one CUSTOMER and prints a bearer token
for each. Credentials live in the identity service; these tokens are for
local use against a development database only.
"""

import asyncio

from sqlalchemy import select

from sendit.app.core.jwt import issue_token
from sendit.app.db.session import AsyncSessionLocal, Base, engine
from sendit.app.models.enums import UserRole
from sendit.app.models.user import User

SEED_USERS = [
    ("admin@sendit.co.ke", "SendIT Admin", UserRole.ADMIN, None),
    ("courier@sendit.co.ke", "Demo Courier", UserRole.COURIER, "+254711000001"),
    ("customer@sendit.co.ke", "Demo Customer", UserRole.CUSTOMER, "+254711000002"),
]


async def seed_users():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("Seeding users...")
        users = []
        for email, name, role, phone in SEED_USERS:
            result = await db.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()
            if user is None:
                user = User(email=email, name=name, role=role, phone=phone)
                db.add(user)
                print(f"  created {role.value:<8} {email}")
            else:
                print(f"  exists  {role.value:<8} {email}")
            users.append(user)

        await db.commit()

        print("\nDevelopment tokens:")
        for user in users:
            print(f"  {user.role.value:<8} {issue_token(user)}")


if __name__ == "__main__":
    asyncio.run(seed_users())
