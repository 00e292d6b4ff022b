"""User request/response schemas - API contract and validation."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, model_validator

from lendhub.db.models.enums import Role


class UserBase(BaseModel):
    email: EmailStr
    nickname: str = Field(..., min_length=1, max_length=100)


class UserCreate(UserBase):
    # bcrypt accepts max 72 bytes; longer passwords cause 500. Validate here for clear 422.
    password: str = Field(..., min_length=1, max_length=72)
    role: Role = Role.USER
    address: str | None = None
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserUpdate(BaseModel):
    nickname: str | None = Field(None, min_length=1, max_length=100)
    address: str | None = None
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    exchange_point_ids: list[int] | None = None

    @model_validator(mode="after")
    def _location_pair(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        return self


class UserResponse(UserBase):
    id: int
    role: Role
    is_active: bool
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    exchange_point_ids: list[int] = Field(default_factory=list)
    created_at: datetime

    model_config = {"from_attributes": True}
