"""
Profile and user management routes
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.models import get_db, User, Country, UserStatus
from app.schemas import ProfileUpdate, UserResponse, UserListResponse
from app.core.security import get_current_user, require_admin

router = APIRouter(tags=["User Management"])


@router.get("/profile", response_model=UserResponse)
async def get_profile(
    current_user: User = Depends(get_current_user)
):
    """
    Get the authenticated user's profile.
    """
    return current_user


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    profile_data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Update name, country and avatar of the authenticated user.
    """
    changes = profile_data.model_dump(exclude_unset=True)

    if changes.get("country_id") and not await db.get(Country, changes["country_id"]):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Country not found"
        )

    for field, value in changes.items():
        setattr(current_user, field, value)

    await db.commit()
    await db.refresh(current_user)
    return current_user


@router.get("/users", response_model=UserListResponse)
async def list_users(
    status_filter: Optional[UserStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    List all users. Requires the admin role.
    """
    query = select(User)
    count_query = select(func.count(User.id))

    if status_filter:
        query = query.where(User.status == status_filter)
        count_query = count_query.where(User.status == status_filter)
    if search:
        search_filter = f"%{search}%"
        condition = (
            User.email.ilike(search_filter) |
            User.first_name.ilike(search_filter) |
            User.last_name.ilike(search_filter)
        )
        query = query.where(condition)
        count_query = count_query.where(condition)

    total = (await db.execute(count_query)).scalar() or 0
    result = await db.execute(query.order_by(User.created_at))

    return UserListResponse(users=result.scalars().all(), total=total)
