from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from database import get_db
from models.User import User
from schemas import MeRead, MeUpdate, SuccessResponse
from services.auth_service import Identity, get_current_user

router = APIRouter(prefix="/api/me", tags=["Me"])


def _load_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("", response_model=MeRead)
def get_me(current: Identity = Depends(get_current_user), db: Session = Depends(get_db)):
    return _load_user(db, current.id)


@router.put("", response_model=SuccessResponse)
def update_me(
    payload: MeUpdate,
    current: Identity = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Overwrite full_name, bio and avatar_url of the caller.
    """
    user = _load_user(db, current.id)
    user.full_name = payload.full_name
    user.bio = payload.bio
    user.avatar_url = payload.avatar_url
    db.commit()
    return {"success": True}
