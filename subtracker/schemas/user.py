import re
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    display_name: Optional[str] = Field(None, max_length=100)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters long")
        if not re.search(r"\d", v):
            raise ValueError("Password must contain at least one number")
        if not re.search(r'[!@#$%^&*(),.?":{}|<>]', v):
            raise ValueError("Password must contain at least one special character")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: int
    email: str
    display_name: Optional[str] = None

    class Config:
        from_attributes = True


class UserProfileResponse(BaseModel):
    id: int
    email: str
    display_name: Optional[str] = None
    email_notifications_enabled: bool
    reminder_days: int

    class Config:
        from_attributes = True


class NotificationPreferencesUpdate(BaseModel):
    email_notifications_enabled: Optional[bool] = None
    # 0 means remind only on the renewal day
    reminder_days: Optional[int] = Field(None, ge=0, le=30)
    display_name: Optional[str] = Field(None, max_length=100)


class NotificationPreferencesResponse(BaseModel):
    email_notifications_enabled: bool
    reminder_days: int

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
