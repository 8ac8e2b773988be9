from typing import List
from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from sqlalchemy import or_, select

from models.User import User
from models.Follower import Follower
from schemas import UserSummary, ProfileRead, PostWithAuthor, FollowState
from database import get_db
from services import graph_service
from services.auth_service import Identity, get_current_user

router = APIRouter(prefix="/api/users", tags=["Users"])

SEARCH_LIMIT = 20
SUGGESTIONS_LIMIT = 5
DIRECTORY_LIMIT = 20


def _get_user_by_username(db: Session, username: str) -> User:
    user = db.query(User).filter(User.username == username).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _like_pattern(q: str) -> str:
    escaped = q.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


# Fixed paths first so they are not captured by /{username}

@router.get("/suggestions", response_model=List[UserSummary])
def get_suggestions(current: Identity = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Users the caller does not follow yet (excluding the caller).
    """
    followed = select(Follower.following_id).where(Follower.follower_id == current.id)
    return (
        db.query(User)
        .filter(User.id != current.id, User.id.not_in(followed))
        .order_by(User.id)
        .limit(SUGGESTIONS_LIMIT)
        .all()
    )


@router.get("/search", response_model=List[UserSummary])
def search_users(
    q: str = Query(""),
    current: Identity = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Case-insensitive substring search over username and full name.
    """
    pattern = _like_pattern(q)
    return (
        db.query(User)
        .filter(or_(
            User.username.ilike(pattern, escape="\\"),
            User.full_name.ilike(pattern, escape="\\"),
        ))
        .order_by(User.id)
        .limit(SEARCH_LIMIT)
        .all()
    )


@router.get("", response_model=List[UserSummary])
def get_users(current: Identity = Depends(get_current_user), db: Session = Depends(get_db)):
    return db.query(User).order_by(User.id).limit(DIRECTORY_LIMIT).all()


@router.get("/{username}", response_model=ProfileRead)
def get_user_profile(
    username: str,
    current: Identity = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get user profile with posts, follow counts and follow status.
    """
    user = _get_user_by_username(db, username)
    followers_count, following_count = graph_service.follow_counts(db, user.id)

    return {
        "id": user.id,
        "username": user.username,
        "full_name": user.full_name,
        "bio": user.bio,
        "avatar_url": user.avatar_url,
        "posts": graph_service.list_user_posts(db, user.id),
        "followers_count": followers_count,
        "following_count": following_count,
        "is_following": graph_service.is_following(db, current.id, user.id),
    }


@router.get("/{username}/saved", response_model=List[PostWithAuthor])
def get_saved_posts(
    username: str,
    current: Identity = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Saved posts of a user. Only the owner can see them.
    """
    user = _get_user_by_username(db, username)
    if user.id != current.id:
        raise HTTPException(status_code=403, detail="Saved posts are private")
    return graph_service.list_saved(db, user.id)


@router.post("/{user_id}/follow", response_model=FollowState)
def toggle_follow(
    user_id: int,
    current: Identity = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Follow a user, or unfollow if already following.
    """
    if user_id == current.id:
        raise HTTPException(status_code=400, detail="Cannot follow yourself")

    target = db.query(User).filter(User.id == user_id).first()
    if not target:
        raise HTTPException(status_code=404, detail="User not found")

    return {"following": graph_service.toggle_follow(db, current.id, user_id)}
