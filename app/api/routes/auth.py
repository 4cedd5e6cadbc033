"""
Authentication routes
"""
import logging
from datetime import datetime, timedelta
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from starlette.concurrency import run_in_threadpool

from app.models import get_db, User, Country, RoleName, UserStatus
from app.schemas import (
    LoginRequest, TokenResponse, UserCreate, DetailMessage, EmailRequest,
    ResetPasswordRequest, TokenMessageResponse, ResetTokenStatus
)
from app.core.security import (
    verify_password, get_password_hash, create_access_token, generate_one_time_token
)
from app.core.config import settings
from app.services import email_service
from app.services.seed_service import ensure_role

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])

RESET_REQUESTED_MESSAGE = "If an account exists for this email, a password reset link has been sent"
VERIFICATION_SENT_MESSAGE = "If an account exists for this email, a verification link has been sent"


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=user
    )


async def _get_user_by(db: AsyncSession, column, value):
    result = await db.execute(select(User).where(column == value))
    return result.scalar_one_or_none()


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new public user. The returned token is usable right away;
    the verification link only flips email_verified.
    """
    email = user_data.email.lower()
    if await _get_user_by(db, User.email, email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered"
        )

    if user_data.country_id and not await db.get(Country, user_data.country_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Country not found"
        )

    role = await ensure_role(db, RoleName.PUBLIC)
    user = User(
        email=email,
        hashed_password=get_password_hash(user_data.password),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        country_id=user_data.country_id,
        role=role,
        email_verified=False,
        email_verification_token=generate_one_time_token()
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    await run_in_threadpool(
        email_service.send_verification_email, user.email, user.first_name, user.email_verification_token
    )
    logger.info(f"User registered: {user.email}")

    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Authenticate user and return a JWT.
    """
    user = await _get_user_by(db, User.email, login_data.email.lower())

    if not user or not verify_password(login_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    if user.status != UserStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated"
        )

    return _token_response(user)


@router.get("/verify-email/{token}", response_model=TokenMessageResponse)
async def verify_email(
    token: str,
    db: AsyncSession = Depends(get_db)
):
    """
    Confirm an email address and issue a token carrying email_verified=true.
    """
    user = await _get_user_by(db, User.email_verification_token, token)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired verification token"
        )

    user.email_verified = True
    user.email_verification_token = None
    await db.commit()

    return TokenMessageResponse(
        message="Email verified successfully",
        access_token=create_access_token(user)
    )


@router.post("/resend-verification", response_model=DetailMessage)
async def resend_verification(
    request_data: EmailRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Issue a new verification token.
    """
    user = await _get_user_by(db, User.email, request_data.email.lower())
    if not user:
        return DetailMessage(message=VERIFICATION_SENT_MESSAGE)

    if user.email_verified:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email is already verified"
        )

    user.email_verification_token = generate_one_time_token()
    await db.commit()

    await run_in_threadpool(
        email_service.send_verification_email, user.email, user.first_name, user.email_verification_token
    )
    return DetailMessage(message=VERIFICATION_SENT_MESSAGE)


@router.post("/request-password-reset", response_model=DetailMessage)
async def request_password_reset(
    request_data: EmailRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Store a single-use reset token on the account and email it.
    The response does not reveal whether the account exists.
    """
    user = await _get_user_by(db, User.email, request_data.email.lower())
    if not user:
        return DetailMessage(message=RESET_REQUESTED_MESSAGE)

    now = datetime.utcnow()
    if user.password_reset_token and user.password_reset_expires and user.password_reset_expires > now:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="A password reset was already requested. Check your email or try again later"
        )

    user.password_reset_token = generate_one_time_token()
    user.password_reset_expires = now + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
    await db.commit()

    await run_in_threadpool(
        email_service.send_password_reset_email, user.email, user.first_name, user.password_reset_token
    )
    return DetailMessage(message=RESET_REQUESTED_MESSAGE)


@router.get("/validate-reset-token/{token}", response_model=ResetTokenStatus)
async def validate_reset_token(
    token: str,
    db: AsyncSession = Depends(get_db)
):
    """
    Report whether a reset token can still be used.
    """
    user = await _get_user_by(db, User.password_reset_token, token)
    if not user or not user.password_reset_expires or user.password_reset_expires <= datetime.utcnow():
        return ResetTokenStatus(valid=False)
    return ResetTokenStatus(valid=True, email=user.email, expires_at=user.password_reset_expires)


@router.post("/reset-password", response_model=TokenMessageResponse)
async def reset_password(
    reset_data: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Set a new password using a reset token.
    """
    user = await _get_user_by(db, User.password_reset_token, reset_data.token)
    if not user or not user.password_reset_expires or user.password_reset_expires <= datetime.utcnow():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token"
        )

    if verify_password(reset_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="New password must be different from the current password"
        )

    user.hashed_password = get_password_hash(reset_data.password)
    user.password_reset_token = None
    user.password_reset_expires = None
    await db.commit()
    logger.info(f"Password reset for {user.email}")

    return TokenMessageResponse(
        message="Password reset successfully",
        access_token=create_access_token(user)
    )
