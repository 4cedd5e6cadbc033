"""
Country lookup routes
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.models import get_db, User, Country
from app.schemas import CountryCreate, CountryResponse
from app.core.security import require_admin

router = APIRouter(prefix="/countries", tags=["Countries"])


@router.get("", response_model=list[CountryResponse])
async def list_countries(db: AsyncSession = Depends(get_db)):
    """
    List countries for registration and profile forms.
    """
    result = await db.execute(select(Country).order_by(Country.name))
    return result.scalars().all()


@router.post("", response_model=CountryResponse, status_code=status.HTTP_201_CREATED)
async def create_country(
    country_data: CountryCreate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Add a country. Requires the admin role.
    """
    result = await db.execute(select(Country).where(Country.name == country_data.name))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Country already exists"
        )

    country = Country(name=country_data.name, code=country_data.code.upper() if country_data.code else None)
    db.add(country)
    await db.commit()
    await db.refresh(country)
    return country
