from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from database import get_db
from models.Post import Post, POST_TYPES
from schemas import FeedPost, LikeState, PostCreated, SaveState, SuccessResponse
from services import graph_service
from services.auth_service import Identity, get_current_user
from services.storage_service import delete_upload, save_upload
from utils.logger import get_logger

router = APIRouter(prefix="/api/posts", tags=["Posts"])

logger = get_logger("posts")


def get_post_or_404(db: Session, post_id: int) -> Post:
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.get("", response_model=List[FeedPost])
def get_feed(current: Identity = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Every post newest-first with like/comment counts and the caller's
    like/save flags.
    """
    return graph_service.list_feed(db, current.id)


@router.post("", response_model=PostCreated)
async def create_post(
    type: str = Form(...),
    caption: Optional[str] = Form(None),
    url: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    current: Identity = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Create a post from an uploaded file or from a direct URL.
    An uploaded file takes precedence over `url`.
    """
    if type not in POST_TYPES:
        raise HTTPException(status_code=400, detail="type must be 'image' or 'video'")

    stored = False
    if file is not None and file.filename:
        url = await save_upload(file)
        stored = True
    elif not url or not url.strip():
        raise HTTPException(status_code=400, detail="A file or a url is required")

    post = Post(user_id=current.id, type=type, url=url, caption=caption)
    try:
        db.add(post)
        db.commit()
        db.refresh(post)
    except Exception:
        db.rollback()
        if stored:
            delete_upload(url)
        raise

    logger.info("User %s created post %s", current.id, post.id)
    return {"id": post.id}


@router.delete("/{post_id}", response_model=SuccessResponse)
def delete_post(
    post_id: int,
    current: Identity = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Delete a post (only its owner can). Likes, comments and saves go with it.
    """
    post = get_post_or_404(db, post_id)
    if post.user_id != current.id:
        raise HTTPException(status_code=403, detail="Not authorized to delete this post")

    graph_service.delete_post(db, post)
    return {"success": True}


# ---------- Likes ----------

@router.post("/{post_id}/like", response_model=LikeState)
def toggle_like(
    post_id: int,
    current: Identity = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Like the post, or unlike it if the caller already liked it.
    """
    get_post_or_404(db, post_id)
    return {"liked": graph_service.toggle_like(db, current.id, post_id)}


# ---------- Saves ----------

@router.post("/{post_id}/save", response_model=SaveState)
def toggle_save(
    post_id: int,
    current: Identity = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Save the post, or remove it from the caller's saved list.
    """
    get_post_or_404(db, post_id)
    return {"saved": graph_service.toggle_save(db, current.id, post_id)}
