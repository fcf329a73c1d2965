from datetime import datetime, timezone
from typing import Annotated, List
import math

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy import func
from sqlmodel import Session, or_, select
import structlog

from models import BasicResponse, Post, PostList, PostPage, PostPublic
from dependencies import CurrentUserId, SessionDep, get_user_or_404, to_post_public
from core.config import get_settings
from core.metrics import posts_created_total
from services import storage

router = APIRouter()
settings = get_settings()
logger = structlog.get_logger(__name__)

SORT_FIELDS = {
    "created_at": Post.created_at,
    "createdAt": Post.created_at,
    "updated_at": Post.updated_at,
    "updatedAt": Post.updated_at,
    "title": Post.title,
}


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit)


def parse_sort(sort: str):
    """Turn `field` / `-field` into ORDER BY clauses, newest id breaks ties"""
    descending = sort.startswith("-")
    column = SORT_FIELDS.get(sort[1:] if descending else sort)
    if column is None:
        raise HTTPException(status_code=400, detail=f"Invalid sort key: {sort}")
    if descending:
        return [column.desc(), Post.id.desc()]
    return [column.asc(), Post.id.asc()]


def search_filter(search: str):
    escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    return or_(
        Post.title.ilike(pattern, escape="\\"),
        Post.content.ilike(pattern, escape="\\"),
    )


def get_post_or_404(post_id: int, session: Session) -> Post:
    post = session.get(Post, post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


def get_owned_post(post_id: int, user_id: int, session: Session, action: str) -> Post:
    """Fetch a post and make sure the caller owns it"""
    post = get_post_or_404(post_id, session)
    if post.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You don't have permission to {action}",
        )
    return post


def validate_uploads(images: List[UploadFile] | None) -> list[storage.ValidatedImage]:
    uploads = [image for image in images or [] if image.filename]
    if len(uploads) > settings.MAX_POST_IMAGES:
        raise HTTPException(
            status_code=400,
            detail=f"A post accepts at most {settings.MAX_POST_IMAGES} images per request",
        )
    try:
        return storage.validate_images(uploads)
    except storage.InvalidUploadError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=PostPage)
async def list_posts(
    session: SessionDep,
    search: str = "",
    sort: str = "-created_at",
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
) -> PostPage:
    """List posts with optional search, sorting and pagination"""
    order = parse_sort(sort)
    filters = [search_filter(search)] if search else []

    skip = (page - 1) * limit
    posts = session.exec(
        select(Post).where(*filters).order_by(*order).offset(skip).limit(limit)
    ).all()
    total_posts = session.exec(
        select(func.count()).select_from(Post).where(*filters)
    ).one()

    return PostPage(
        posts=[to_post_public(post) for post in posts],
        total_posts=total_posts,
        total_pages=page_count(total_posts, limit),
        current_page=page,
    )


@router.get("/user/posts", response_model=PostList)
async def get_own_posts(session: SessionDep, current_user_id: CurrentUserId) -> PostList:
    """Get all posts created by the current user"""
    posts = session.exec(
        select(Post)
        .where(Post.user_id == current_user_id)
        .order_by(Post.created_at.desc(), Post.id.desc())
    ).all()
    return PostList(posts=[to_post_public(post) for post in posts])


@router.get("/{post_id}", response_model=PostPublic)
async def get_post(post_id: int, session: SessionDep) -> PostPublic:
    """Get a specific post by ID"""
    return to_post_public(get_post_or_404(post_id, session))


@router.post("", response_model=PostPublic, status_code=status.HTTP_201_CREATED)
async def create_post(
    session: SessionDep,
    current_user_id: CurrentUserId,
    title: Annotated[str | None, Form()] = None,
    content: Annotated[str | None, Form()] = None,
    images: Annotated[List[UploadFile] | None, File()] = None,
) -> PostPublic:
    """Create a new post with up to five images"""
    if not title or not content:
        raise HTTPException(status_code=400, detail="Title and content are required")
    get_user_or_404(current_user_id, session)
    validated = validate_uploads(images)

    post = Post(
        title=title,
        content=content,
        user_id=current_user_id,
        images=storage.save_images(validated),
    )
    session.add(post)
    session.commit()
    session.refresh(post)

    posts_created_total.inc()
    logger.info("post_created", post_id=post.id, user_id=current_user_id, images=len(post.images))
    return to_post_public(post)


@router.put("/{post_id}", response_model=PostPublic)
async def update_post(
    post_id: int,
    session: SessionDep,
    current_user_id: CurrentUserId,
    title: Annotated[str | None, Form()] = None,
    content: Annotated[str | None, Form()] = None,
    images: Annotated[List[UploadFile] | None, File()] = None,
) -> PostPublic:
    """Update title/content and append newly uploaded images"""
    post = get_owned_post(post_id, current_user_id, session, "update this post")
    validated = validate_uploads(images)

    if title is not None:
        post.title = title
    if content is not None:
        post.content = content
    if validated:
        # Uploaded images are appended, never replace existing ones
        post.images = [*post.images, *storage.save_images(validated)]
    post.updated_at = datetime.now(timezone.utc)

    session.add(post)
    session.commit()
    session.refresh(post)

    logger.info("post_updated", post_id=post.id, user_id=current_user_id)
    return to_post_public(post)


@router.delete("/{post_id}", response_model=BasicResponse)
async def delete_post(post_id: int, session: SessionDep, current_user_id: CurrentUserId):
    """Delete a post together with its image files"""
    post = get_owned_post(post_id, current_user_id, session, "delete this post")

    for image in post.images:
        storage.delete_file(image)

    session.delete(post)
    session.commit()

    logger.info("post_deleted", post_id=post_id, user_id=current_user_id)
    return BasicResponse(message="Post deleted successfully")


@router.delete("/{post_id}/images/{image_index}", response_model=BasicResponse)
async def delete_post_image(
    post_id: int,
    image_index: int,
    session: SessionDep,
    current_user_id: CurrentUserId,
):
    """Delete a single image from a post by position"""
    post = get_owned_post(post_id, current_user_id, session, "delete this image")

    if image_index < 0 or image_index >= len(post.images):
        raise HTTPException(status_code=400, detail="Invalid image index")

    images = list(post.images)
    storage.delete_file(images[image_index])
    del images[image_index]
    post.images = images

    session.add(post)
    session.commit()

    logger.info("post_image_deleted", post_id=post_id, image_index=image_index)
    return BasicResponse(message="Image deleted successfully")


@router.post("/{post_id}/like", response_model=BasicResponse)
async def like_post(post_id: int, session: SessionDep, current_user_id: CurrentUserId):
    """Like a post"""
    post = get_post_or_404(post_id, session)
    user = get_user_or_404(current_user_id, session)

    if any(liker.id == user.id for liker in post.liked_by):
        raise HTTPException(status_code=400, detail="Post already liked")

    post.liked_by.append(user)
    session.add(post)
    session.commit()

    logger.info("post_liked", post_id=post_id, user_id=current_user_id)
    return BasicResponse(message="Post liked successfully")


@router.post("/{post_id}/unlike", response_model=BasicResponse)
async def unlike_post(post_id: int, session: SessionDep, current_user_id: CurrentUserId):
    """Unlike a post"""
    post = get_post_or_404(post_id, session)
    user = get_user_or_404(current_user_id, session)

    if not any(liker.id == user.id for liker in post.liked_by):
        raise HTTPException(status_code=400, detail="Post not liked")

    post.liked_by.remove(user)
    session.add(post)
    session.commit()

    logger.info("post_unliked", post_id=post_id, user_id=current_user_id)
    return BasicResponse(message="Post unliked successfully")
