from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from schemas import PostWithAuthor
from services import graph_service
from services.auth_service import Identity, get_current_user

router = APIRouter(prefix="/api/explore", tags=["Explore"])


@router.get("", response_model=List[PostWithAuthor])
def get_explore(current: Identity = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Random sample of posts; repeated calls return different selections.
    """
    return graph_service.list_explore(db)
