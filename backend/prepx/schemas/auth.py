from pydantic import BaseModel, EmailStr, Field, field_serializer, field_validator
from typing import Literal, Optional
from datetime import datetime
from uuid import UUID

ExamStage = Literal["prelims", "mains", "interview"]


class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: Optional[str] = Field(None, max_length=255)
    exam_stage: ExamStage = "prelims"
    referral_code: Optional[str] = Field(None, max_length=20, description="Referrer's code from a ?ref= link")


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: UUID
    email: str
    full_name: Optional[str] = None
    role: str
    is_active: bool
    is_verified: bool
    referral_code: Optional[str] = None
    exam_stage: Optional[str] = None
    created_at: datetime

    @field_validator('role', mode='before')
    @classmethod
    def role_value(cls, v):
        return getattr(v, "value", v)

    @field_serializer('id')
    def serialize_id(self, value: UUID) -> str:
        return str(value)

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
