from typing import Optional

from pydantic import BaseModel, Field

from timebox.schemas.base import CamelModel


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=1)


class UserResponse(CamelModel):
    id: int
    email: str
    name: Optional[str]
    image: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
