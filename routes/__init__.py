from . import auth
from . import me
from . import posts
from . import comments
from . import users
from . import explore

__all__ = [
    "auth",
    "me",
    "posts",
    "comments",
    "users",
    "explore",
]
