"""Login request schema for admin authentication."""

from pydantic import BaseModel


class LoginRequest(BaseModel):
    """Payload for login attempts."""

    mobile: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
