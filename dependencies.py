from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import uuid4
import logging
from time import time

from fastapi import Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi.responses import JSONResponse
from sqlmodel import Session, select, create_engine
from jwt.exceptions import InvalidTokenError
import jwt
import structlog

from core.config import get_settings
from models import Post, PostPublic, User, UserProfile, UserSummary
from auth.security import verify_password

settings = get_settings()
logger = logging.getLogger(__name__)
auth_logger = structlog.get_logger("auth")


def build_engine(url: str):
    connect_args = {}
    if url.startswith("sqlite"):
        # Sessions are used from the threadpool as well as the event loop
        connect_args["check_same_thread"] = False
    return create_engine(url, echo=settings.DB_ECHO, connect_args=connect_args)


engine = build_engine(settings.DATABASE_URL)

# Database dependency
def get_session():
    with Session(engine) as session:
        yield session

SessionDep = Annotated[Session, Depends(get_session)]

# Authentication dependencies
bearer_scheme = HTTPBearer(auto_error=False)

def get_user_by_email(email: str, session: Session) -> User | None:
    return session.exec(select(User).where(User.email == email)).first()

def get_user_or_404(user_id: int, session: Session) -> User:
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user

def authenticate_user(email: str, password: str, session: Session):
    user = get_user_by_email(email, session)
    if not user:
        return False
    if not verify_password(password, user.password_hash):
        return False
    return user

def create_access_token(data: dict, expires_delta: timedelta | None = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta if expires_delta else timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

async def get_current_user_id(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> int:
    """Resolve the subject id of a valid bearer token"""
    if credentials is None or credentials.scheme.lower() != "bearer":
        auth_logger.info("auth_rejected", reason="missing_token", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token, authorization denied",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = jwt.decode(
            credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        user_id = int(payload["sub"])
    except (InvalidTokenError, KeyError, TypeError, ValueError) as e:
        auth_logger.info(
            "auth_rejected", reason=type(e).__name__, path=request.url.path
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id

CurrentUserId = Annotated[int, Depends(get_current_user_id)]

# Middleware
async def log_requests(request: Request, call_next):
    start_time = time()
    response = await call_next(request)
    process_time = time() - start_time

    logger.info(
        f"Path: {request.url.path} | "
        f"Method: {request.method} | "
        f"Status: {response.status_code} | "
        f"Process Time: {process_time:.2f}s"
    )
    return response

# Error handlers
def setup_error_handlers(app):
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        logger.warning(
            f"Validation error on {request.url.path}",
            extra={"path": request.url.path, "method": request.method},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Request validation failed", "errors": errors},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        error_id = str(uuid4())
        logger.error(
            f"Unhandled error {error_id}: {str(exc)}",
            exc_info=True,
            extra={
                "path": request.url.path,
                "method": request.method,
                "error_id": error_id,
            },
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "error": str(exc),
                "error_id": error_id,
            },
        )


def to_user_summary(user: User) -> UserSummary:
    return UserSummary(id=user.id, email=user.email, profile_picture=user.profile_picture)


def to_user_profile(user: User) -> UserProfile:
    """Public profile without the password hash, with follows expanded"""
    return UserProfile(
        id=user.id,
        email=user.email,
        profile_picture=user.profile_picture,
        created_at=user.created_at,
        followers=[to_user_summary(u) for u in user.followers],
        following=[to_user_summary(u) for u in user.following],
    )


def to_post_public(post: Post) -> PostPublic:
    likes = [user.id for user in post.liked_by]
    return PostPublic(
        id=post.id,
        title=post.title,
        content=post.content,
        images=list(post.images or []),
        likes=likes,
        like_count=len(likes),
        user=to_user_summary(post.user),
        created_at=post.created_at,
        updated_at=post.updated_at,
    )
