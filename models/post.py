from sqlmodel import Field, SQLModel, Relationship
from sqlalchemy import Column, JSON
from datetime import datetime, timezone
from typing import List, TYPE_CHECKING

from .like import PostLike
from .response import APIModel
from .user import UserSummary

if TYPE_CHECKING:
    from .user import User


class PostBase(SQLModel):
    title: str
    content: str


class Post(PostBase, table=True):
    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    # Ordered relative URLs (/uploads/<file>); reassign the list to persist changes
    images: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    liked_by: List["User"] = Relationship(back_populates="likes", link_model=PostLike)
    user: "User" = Relationship(back_populates="posts")


class PostPublic(APIModel):
    id: int
    title: str
    content: str
    images: List[str]
    likes: List[int]
    like_count: int
    user: UserSummary
    created_at: datetime
    updated_at: datetime


class PostPage(APIModel):
    posts: List[PostPublic]
    total_posts: int
    total_pages: int
    current_page: int


class PostList(APIModel):
    posts: List[PostPublic]
