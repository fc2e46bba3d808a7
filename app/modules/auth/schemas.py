from pydantic import BaseModel, EmailStr
from typing import Optional


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    user_id: str
    email: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    full_name: Optional[str] = None
    company: Optional[str] = None


class RegisterResponse(BaseModel):
    user_id: str
    email: str
    message: str


class EmailRequest(BaseModel):
    """Body for magic-link sign in and password reset."""
    email: EmailStr
    redirect_to: Optional[str] = None


class MessageResponse(BaseModel):
    message: str
