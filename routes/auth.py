from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import get_db
from models.User import User
from schemas import AuthResponse, LoginRequest, SignupRequest
from services.auth_service import create_access_token
from services.graph_service import serialize_user
from utils import get_password_hash, verify_password
from utils.logger import get_logger

router = APIRouter(prefix="/api/auth", tags=["Auth"])

logger = get_logger("auth")


@router.post("/signup", response_model=AuthResponse)
def signup(payload: SignupRequest, db: Session = Depends(get_db)):
    """
    Create an account and return a session token for it.
    """
    exists = db.query(User).filter(User.username == payload.username).first()
    if exists:
        raise HTTPException(status_code=400, detail="Username already exists")

    new_user = User(
        username=payload.username,
        password=get_password_hash(payload.password),
        full_name=payload.full_name,
    )
    db.add(new_user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent signup for the same username
        db.rollback()
        raise HTTPException(status_code=400, detail="Username already exists")
    db.refresh(new_user)

    logger.info("New user %s (id=%s)", new_user.username, new_user.id)
    token = create_access_token(new_user.id, new_user.username)
    return {"token": token, "user": serialize_user(new_user)}


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    """
    Check credentials and return a fresh session token.
    """
    user = db.query(User).filter(User.username == payload.username).first()
    if not verify_password(payload.password, user.password if user else None):
        logger.info("Failed login for %s", payload.username)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = create_access_token(user.id, user.username)
    return {"token": token, "user": serialize_user(user)}
