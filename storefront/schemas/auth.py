from pydantic import EmailStr, Field
from storefront.schemas.base import CamelModel


class SignupRequest(CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class UserResponse(CamelModel):
    id: int
    name: str
    email: EmailStr
    role: str


class AuthResponse(CamelModel):
    user: UserResponse
    message: str


class MessageResponse(CamelModel):
    message: str
