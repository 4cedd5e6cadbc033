"""
Create an admin account
Run once against a fresh database: python create_admin.py EMAIL PASSWORD
"""
import argparse
import asyncio

from app.models.database import async_session_maker, init_db
from app.services.seed_service import seed_reference_data, create_admin


async def main(email: str, password: str):
    # Initialize DB tables first
    await init_db()

    async with async_session_maker() as session:
        await seed_reference_data(session)
        admin = await create_admin(session, email, password)
        await session.commit()

    if admin:
        print(f"Admin user created: {admin.email}")
    else:
        print(f"{email} is already registered, nothing to do")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create an AgriTech BFF admin account")
    parser.add_argument("email")
    parser.add_argument("password")
    args = parser.parse_args()
    if len(args.password) < 8:
        parser.error("password must be at least 8 characters")
    asyncio.run(main(args.email, args.password))
