"""
Queries and multi-statement transactions over the social graph:
edge toggles (likes, saves, follows), post deletion, and the
denormalized post listings used by the feed, explore and saved views.
"""
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.Comment import Comment
from models.Follower import Follower
from models.Like import Like
from models.Post import Post
from models.SavedPost import SavedPost
from models.User import User
from services.storage_service import delete_upload
from utils.logger import get_logger

logger = get_logger("graph")

EXPLORE_SAMPLE_SIZE = 30


def toggle_edge(db: Session, model, **keys) -> bool:
    """Flip the presence of one edge row and return the new state.

    The existing edge is deleted first and inserted only when nothing was
    deleted, all in one transaction. On SQLite the DELETE takes the write
    lock, which serializes concurrent toggles of the same edge. Where the
    store lets two first toggles both see no row, the later insert fails
    on the primary key; that toggle then reports the edge stored by the
    other one instead of failing.
    """
    removed = 0
    try:
        removed = db.query(model).filter_by(**keys).delete(synchronize_session=False)
        if not removed:
            db.add(model(**keys))
        db.commit()
    except IntegrityError:
        db.rollback()
        if removed or db.query(model).filter_by(**keys).first() is None:
            # not a duplicate edge, e.g. a foreign key failure
            raise
        logger.info("Concurrent toggle already stored %s %s", model.__tablename__, keys)
        return True
    except Exception:
        db.rollback()
        raise
    return not removed


def toggle_like(db: Session, user_id: int, post_id: int) -> bool:
    return toggle_edge(db, Like, user_id=user_id, post_id=post_id)


def toggle_save(db: Session, user_id: int, post_id: int) -> bool:
    return toggle_edge(db, SavedPost, user_id=user_id, post_id=post_id)


def toggle_follow(db: Session, follower_id: int, following_id: int) -> bool:
    return toggle_edge(db, Follower, follower_id=follower_id, following_id=following_id)


def delete_post(db: Session, post: Post) -> None:
    """Remove a post with its likes, comments and saves in one transaction.

    The media file is removed only after the rows are gone; failing to
    remove it is logged and otherwise ignored.
    """
    post_id, url = post.id, post.url
    try:
        db.query(Like).filter(Like.post_id == post_id).delete(synchronize_session=False)
        db.query(Comment).filter(Comment.post_id == post_id).delete(synchronize_session=False)
        db.query(SavedPost).filter(SavedPost.post_id == post_id).delete(synchronize_session=False)
        db.query(Post).filter(Post.id == post_id).delete(synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Deleted post %s", post_id)
    delete_upload(url)


# ---------- Serialization ----------

def serialize_post(post: Post, author: Optional[User] = None, **extra) -> dict:
    data = {
        "id": post.id,
        "user_id": post.user_id,
        "type": post.type,
        "url": post.url,
        "caption": post.caption,
        "created_at": post.created_at,
    }
    if author is not None:
        data["username"] = author.username
        data["avatar_url"] = author.avatar_url
    data.update(extra)
    return data


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "full_name": user.full_name,
        "avatar_url": user.avatar_url,
    }


# ---------- Listings ----------

def _newest_first(query):
    return query.order_by(Post.created_at.desc(), Post.id.desc())


def list_feed(db: Session, actor_id: int) -> List[dict]:
    """All posts newest-first, with per-post counts and the actor's flags."""
    likes_count = (
        select(func.count()).select_from(Like)
        .where(Like.post_id == Post.id)
        .correlate(Post).scalar_subquery()
    )
    is_liked = (
        select(func.count()).select_from(Like)
        .where(Like.post_id == Post.id, Like.user_id == actor_id)
        .correlate(Post).scalar_subquery()
    )
    is_saved = (
        select(func.count()).select_from(SavedPost)
        .where(SavedPost.post_id == Post.id, SavedPost.user_id == actor_id)
        .correlate(Post).scalar_subquery()
    )
    comments_count = (
        select(func.count()).select_from(Comment)
        .where(Comment.post_id == Post.id)
        .correlate(Post).scalar_subquery()
    )

    rows = _newest_first(
        db.query(
            Post,
            User,
            likes_count.label("likes_count"),
            is_liked.label("is_liked"),
            is_saved.label("is_saved"),
            comments_count.label("comments_count"),
        ).join(User, Post.user_id == User.id)
    ).all()

    return [
        serialize_post(
            post,
            author,
            likes_count=likes,
            is_liked=liked,
            is_saved=saved,
            comments_count=comments,
        )
        for post, author, likes, liked, saved, comments in rows
    ]


def list_explore(db: Session, limit: int = EXPLORE_SAMPLE_SIZE) -> List[dict]:
    """Random sample of posts; order and membership vary between calls."""
    rows = (
        db.query(Post, User)
        .join(User, Post.user_id == User.id)
        .order_by(func.random())
        .limit(limit)
        .all()
    )
    return [serialize_post(post, author) for post, author in rows]


def list_saved(db: Session, user_id: int) -> List[dict]:
    rows = _newest_first(
        db.query(Post, User)
        .join(SavedPost, SavedPost.post_id == Post.id)
        .join(User, Post.user_id == User.id)
        .filter(SavedPost.user_id == user_id)
    ).all()
    return [serialize_post(post, author) for post, author in rows]


def list_user_posts(db: Session, user_id: int) -> List[dict]:
    posts = _newest_first(db.query(Post).filter(Post.user_id == user_id)).all()
    return [serialize_post(post) for post in posts]


def list_comments(db: Session, post_id: int) -> List[dict]:
    """Comments of a post oldest-first with author username/avatar."""
    rows = (
        db.query(Comment, User)
        .join(User, Comment.user_id == User.id)
        .filter(Comment.post_id == post_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )
    return [
        {
            "id": comment.id,
            "user_id": comment.user_id,
            "post_id": comment.post_id,
            "content": comment.content,
            "created_at": comment.created_at,
            "username": author.username,
            "avatar_url": author.avatar_url,
        }
        for comment, author in rows
    ]


def follow_counts(db: Session, user_id: int) -> tuple[int, int]:
    """(followers_count, following_count) for a user."""
    followers = db.query(Follower).filter(Follower.following_id == user_id).count()
    following = db.query(Follower).filter(Follower.follower_id == user_id).count()
    return followers, following


def is_following(db: Session, follower_id: int, following_id: int) -> bool:
    follow = db.query(Follower).filter(
        Follower.follower_id == follower_id,
        Follower.following_id == following_id
    ).first()
    return follow is not None
