from .like import PostLike
from .user import (
    User, UserFollow, UserSummary, UserProfile, UserCreate, UserLogin,
    UserRegistered, Token,
)
from .post import Post, PostPublic, PostPage, PostList
from .response import APIModel, BasicResponse, ProfilePictureResponse

__all__ = [
    "PostLike",
    "User", "UserFollow", "UserSummary", "UserProfile", "UserCreate", "UserLogin",
    "UserRegistered", "Token",
    "Post", "PostPublic", "PostPage", "PostList",
    "APIModel", "BasicResponse", "ProfilePictureResponse",
]
