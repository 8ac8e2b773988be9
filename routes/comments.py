from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models.Comment import Comment
from schemas import CommentCreate, CommentCreated, CommentRead
from services import graph_service
from services.auth_service import Identity, get_current_user
from routes.posts import get_post_or_404

router = APIRouter(prefix="/api/posts", tags=["Comments"])


@router.get("/{post_id}/comments", response_model=List[CommentRead])
def list_comments(
    post_id: int,
    current: Identity = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return graph_service.list_comments(db, post_id)


@router.post("/{post_id}/comments", response_model=CommentCreated)
def add_comment(
    post_id: int,
    payload: CommentCreate,
    current: Identity = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    get_post_or_404(db, post_id)

    comment = Comment(user_id=current.id, post_id=post_id, content=payload.content)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return {"id": comment.id}
