from pydantic import BaseModel, EmailStr
from typing import Optional


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_at: Optional[int] = None
    user_id: str
    email: str


class SignupRequest(BaseModel):
    # Plain strings: validation happens in validate_signup so errors carry user-facing messages
    email: str
    password: str
    name: str
    username: str
    birthdate: Optional[str] = None  # YYYY-MM-DD


class SignupResponse(BaseModel):
    ok: bool = True
    needs_email_confirmation: bool = False


class UsernameAvailability(BaseModel):
    available: bool
