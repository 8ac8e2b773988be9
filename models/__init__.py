from .User import User
from .Post import Post, POST_TYPES
from .Follower import Follower
from .Like import Like
from .SavedPost import SavedPost
from .Comment import Comment

__all__ = [
    "User",
    "Post",
    "POST_TYPES",
    "Follower",
    "Like",
    "SavedPost",
    "Comment",
]
