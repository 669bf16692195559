from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional
import datetime
from .roles import Role, SELF_ASSIGNABLE_ROLES


class UserRegister(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: Role = Role.DONOR

    @field_validator('role')
    @classmethod
    def role_is_self_assignable(cls, v):
        if v not in SELF_ASSIGNABLE_ROLES:
            raise ValueError('role must be donor or campaign_owner')
        return v


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserPublic(BaseModel):
    id: Optional[int] = None
    name: str

    model_config = ConfigDict(from_attributes=True)


class User(BaseModel):
    id: int
    name: str
    email: EmailStr
    role: Role
    is_verified: bool
    verified_by_id: Optional[int] = None
    verified_at: Optional[datetime.datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)


class AuthToken(BaseModel):
    token: str
    user: User


class UserVerify(BaseModel):
    is_verified: bool = Field(..., alias='isVerified')
    rejection_reason: Optional[str] = Field(None, alias='rejectionReason', max_length=500)

    model_config = ConfigDict(populate_by_name=True)


class UserUpdate(BaseModel):
    """Admin edit: role change and/or verification decision."""
    role: Optional[Role] = None
    is_verified: Optional[bool] = Field(None, alias='isVerified')
    rejection_reason: Optional[str] = Field(None, alias='rejectionReason', max_length=500)

    model_config = ConfigDict(populate_by_name=True)
