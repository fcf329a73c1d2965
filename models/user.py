from sqlmodel import Field, SQLModel, Relationship
from datetime import datetime, timezone
from typing import Optional, TYPE_CHECKING
from pydantic import BaseModel

from .like import PostLike
from .response import APIModel

if TYPE_CHECKING:
    from .post import Post


class UserFollow(SQLModel, table=True):
    follower_id: int = Field(
        foreign_key="user.id",
        primary_key=True,
        ondelete="CASCADE"
    )
    followed_id: int = Field(
        foreign_key="user.id",
        primary_key=True,
        ondelete="CASCADE"
    )


class UserBase(SQLModel):
    email: str = Field(index=True, unique=True)


class User(UserBase, table=True):
    id: int | None = Field(default=None, primary_key=True)
    password_hash: str
    profile_picture: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Self-referential relationships for follows/followers
    followers: list["User"] = Relationship(
        back_populates="following",
        link_model=UserFollow,
        sa_relationship_kwargs={
            'primaryjoin': 'User.id==UserFollow.followed_id',
            'secondaryjoin': 'User.id==UserFollow.follower_id'
        }
    )
    following: list["User"] = Relationship(
        back_populates="followers",
        link_model=UserFollow,
        sa_relationship_kwargs={
            'primaryjoin': 'User.id==UserFollow.follower_id',
            'secondaryjoin': 'User.id==UserFollow.followed_id'
        }
    )

    likes: list["Post"] = Relationship(
        back_populates="liked_by", link_model=PostLike
    )
    posts: list["Post"] = Relationship(back_populates="user")


class UserSummary(APIModel):
    id: int
    email: str
    profile_picture: Optional[str] = None


class UserProfile(UserSummary):
    created_at: datetime
    followers: list[UserSummary] = []
    following: list[UserSummary] = []


class UserCreate(BaseModel):
    email: str
    password: str


class UserLogin(BaseModel):
    email: str
    password: str


class UserRegistered(APIModel):
    message: str
    user: UserSummary


class Token(APIModel):
    token: str
    token_type: str = "bearer"
    user: UserSummary
