from datetime import timedelta
import re

from fastapi import APIRouter, File, HTTPException, UploadFile, status
import structlog

from models import (
    BasicResponse, ProfilePictureResponse, Token, User, UserCreate, UserLogin,
    UserProfile, UserRegistered,
)
from dependencies import (
    CurrentUserId, SessionDep, authenticate_user, create_access_token,
    get_user_by_email, get_user_or_404, to_user_profile, to_user_summary,
)
from services import storage
from services.email import send_welcome_email
from auth.security import get_password_hash
from core.config import get_settings
from core.metrics import users_registered_total

router = APIRouter()
settings = get_settings()
logger = structlog.get_logger(__name__)

def is_valid_email(email: str) -> bool:
    """Validate email format using regex"""
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email))

@router.post("/register", response_model=UserRegistered, status_code=status.HTTP_201_CREATED)
async def register(user: UserCreate, session: SessionDep) -> UserRegistered:
    """Create a new user account"""
    email = user.email.strip().lower()
    if not email or not user.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    if not is_valid_email(email):
        raise HTTPException(status_code=400, detail="Invalid email format")

    if len(user.password) < settings.MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters",
        )

    if get_user_by_email(email, session):
        raise HTTPException(status_code=400, detail="User already exists")

    db_user = User(email=email, password_hash=get_password_hash(user.password))
    session.add(db_user)
    session.commit()
    session.refresh(db_user)

    users_registered_total.inc()
    logger.info("user_registered", user_id=db_user.id)

    # The account is already committed, a mail failure surfaces as a 500
    send_welcome_email(db_user.email)

    return UserRegistered(message="User registered successfully", user=to_user_summary(db_user))

@router.post("/login", response_model=Token)
async def login(credentials: UserLogin, session: SessionDep) -> Token:
    """Exchange email and password for a bearer token"""
    if not credentials.email or not credentials.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    user = authenticate_user(credentials.email.strip().lower(), credentials.password, session)
    if not user:
        logger.info("login_failed")
        raise HTTPException(
            status_code=401,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(
        data={"sub": str(user.id)},
        expires_delta=timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS),
    )
    logger.info("user_logged_in", user_id=user.id)
    return Token(token=access_token, user=to_user_summary(user))

@router.get("/profile", response_model=UserProfile)
async def get_profile(session: SessionDep, current_user_id: CurrentUserId) -> UserProfile:
    """Get current user's profile information"""
    return to_user_profile(get_user_or_404(current_user_id, session))

@router.post("/profile-picture", response_model=ProfilePictureResponse)
async def upload_profile_picture(
    session: SessionDep,
    current_user_id: CurrentUserId,
    profile_picture: UploadFile = File(..., alias="profilePicture"),
):
    """Replace the current user's profile picture"""
    user = get_user_or_404(current_user_id, session)
    try:
        image = storage.validate_image(profile_picture)
    except storage.InvalidUploadError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # Old file goes first, then the new path is recorded
    storage.delete_file(user.profile_picture)
    user.profile_picture = storage.save_profile_picture(image)
    session.add(user)
    session.commit()

    logger.info("profile_picture_updated", user_id=user.id)
    return ProfilePictureResponse(
        message="Profile picture uploaded successfully",
        profile_picture=user.profile_picture,
    )

@router.delete("/profile-picture", response_model=BasicResponse)
async def delete_profile_picture(session: SessionDep, current_user_id: CurrentUserId):
    """Remove the current user's profile picture"""
    user = get_user_or_404(current_user_id, session)
    if not user.profile_picture:
        raise HTTPException(status_code=400, detail="No profile picture to delete")

    storage.delete_file(user.profile_picture)
    user.profile_picture = None
    session.add(user)
    session.commit()

    logger.info("profile_picture_deleted", user_id=user.id)
    return BasicResponse(message="Profile picture deleted successfully")

@router.post("/follow/{user_id}", response_model=BasicResponse)
async def follow_user(user_id: int, session: SessionDep, current_user_id: CurrentUserId):
    """Follow another user"""
    if user_id == current_user_id:
        raise HTTPException(status_code=400, detail="You cannot follow yourself")

    target = get_user_or_404(user_id, session)
    current_user = get_user_or_404(current_user_id, session)

    if any(followed.id == target.id for followed in current_user.following):
        raise HTTPException(status_code=400, detail="Already following this user")

    # One UserFollow row backs both lists, so both sides change in one commit
    current_user.following.append(target)
    session.add(current_user)
    session.commit()

    logger.info("user_followed", user_id=current_user_id, target_id=user_id)
    return BasicResponse(message="User followed successfully")

@router.post("/unfollow/{user_id}", response_model=BasicResponse)
async def unfollow_user(user_id: int, session: SessionDep, current_user_id: CurrentUserId):
    """Unfollow a user"""
    if user_id == current_user_id:
        raise HTTPException(status_code=400, detail="You cannot unfollow yourself")

    target = get_user_or_404(user_id, session)
    current_user = get_user_or_404(current_user_id, session)

    if not any(followed.id == target.id for followed in current_user.following):
        raise HTTPException(status_code=400, detail="Not following this user")

    current_user.following.remove(target)
    session.add(current_user)
    session.commit()

    logger.info("user_unfollowed", user_id=current_user_id, target_id=user_id)
    return BasicResponse(message="User unfollowed successfully")

@router.get("/{user_id}", response_model=UserProfile)
async def get_user_by_id(user_id: int, session: SessionDep) -> UserProfile:
    """Get public profile information for any user by ID"""
    return to_user_profile(get_user_or_404(user_id, session))
