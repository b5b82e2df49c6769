import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.security import authenticate_user, create_access_token, get_password_hash
from ..database import get_db
from ..models import User
from ..schemas.user import Token, UserCreate, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")

USER_EXISTS = "User already exists with this username or email"


@router.post("/register", status_code=201)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """Register a new user."""
    email = user_data.email.lower()
    existing = db.query(User).filter(
        (User.username == user_data.username) | (func.lower(User.email) == email)
    ).first()

    if existing:
        raise HTTPException(status_code=409, detail=USER_EXISTS)

    user = User(
        username=user_data.username,
        email=email,
        hashed_password=get_password_hash(user_data.password),
        is_active=True
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent registration with the same username or email
        db.rollback()
        raise HTTPException(status_code=409, detail=USER_EXISTS)
    db.refresh(user)

    logger.info("Registered user %s", user.username)
    return {
        "success": True,
        "message": "User registered successfully",
        "data": {
            "user": UserResponse.model_validate(user).model_dump(),
            "token": create_access_token({"sub": user.username})
        }
    }


@router.post("/login", response_model=Token)
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """Exchange username and password for a bearer token."""
    user = authenticate_user(db, form_data.username, form_data.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return {"access_token": create_access_token({"sub": user.username}), "token_type": "bearer"}
