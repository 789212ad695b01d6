from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from subtracker.auth import create_access_token, hash_password, verify_password
from subtracker.config import settings
from subtracker.db import get_db
from subtracker.models.user import User
from subtracker.schemas.user import AuthResponse, LoginRequest, UserCreate, UserResponse

router = APIRouter(prefix="/auth", tags=["auth"])


def _issue_token(user: User) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(user),
        access_token=create_access_token(data={"sub": str(user.id)}),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """Register a new user and return a JWT."""
    email = user_data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    user = User(
        email=email,
        hashed_password=hash_password(user_data.password),
        display_name=user_data.display_name or None,
        reminder_days=settings.default_reminder_days,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    return _issue_token(user)


@router.post("/login", response_model=AuthResponse)
async def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == credentials.email.lower()).first()

    if not user or not verify_password(credentials.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    return _issue_token(user)
