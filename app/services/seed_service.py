"""
Reference data and default admin account created at startup
"""
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.security import get_password_hash
from app.models import Role, RoleName, Country, User, UserStatus

logger = logging.getLogger(__name__)

DEFAULT_COUNTRIES = (
    ("Argentina", "AR"),
    ("Bolivia", "BO"),
    ("Brazil", "BR"),
    ("Chile", "CL"),
    ("Colombia", "CO"),
    ("Costa Rica", "CR"),
    ("Ecuador", "EC"),
    ("El Salvador", "SV"),
    ("Guatemala", "GT"),
    ("Honduras", "HN"),
    ("Mexico", "MX"),
    ("Nicaragua", "NI"),
    ("Panama", "PA"),
    ("Paraguay", "PY"),
    ("Peru", "PE"),
    ("Dominican Republic", "DO"),
    ("Spain", "ES"),
    ("United States", "US"),
    ("Uruguay", "UY"),
    ("Venezuela", "VE"),
)


async def ensure_role(db: AsyncSession, name: RoleName) -> Role:
    """Return the role with this name, creating it if missing"""
    result = await db.execute(select(Role).where(Role.name == name.value))
    role = result.scalar_one_or_none()
    if role is None:
        role = Role(name=name.value)
        db.add(role)
        await db.flush()
        logger.info(f"Role created: {name.value}")
    return role


async def seed_roles(db: AsyncSession):
    for name in RoleName:
        await ensure_role(db, name)


async def seed_countries(db: AsyncSession):
    result = await db.execute(select(Country.name))
    existing = set(result.scalars().all())
    missing = [Country(name=name, code=code) for name, code in DEFAULT_COUNTRIES if name not in existing]
    if missing:
        db.add_all(missing)
        await db.flush()
        logger.info(f"Seeded {len(missing)} countries")


async def create_admin(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """Create an admin account unless the email is already registered"""
    email = email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        logger.info(f"Admin user already exists: {email}")
        return None

    role = await ensure_role(db, RoleName.ADMIN)
    admin = User(
        email=email,
        hashed_password=get_password_hash(password),
        first_name="System",
        last_name="Administrator",
        role=role,
        status=UserStatus.ACTIVE,
        email_verified=True
    )
    db.add(admin)
    await db.flush()
    logger.info(f"Default admin user created: {email}")
    return admin


async def seed_reference_data(db: AsyncSession):
    await seed_roles(db)
    await seed_countries(db)
