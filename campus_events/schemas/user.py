"""
User reference schemas.
"""

from pydantic import BaseModel, ConfigDict, Field


class UserRegister(BaseModel):
    """Schema for registering a user known to the identity service."""

    user_id: str = Field(..., min_length=1, description="Identifier issued by the identity service")
    name: str = Field(..., min_length=1)
    surname: str = Field(default="")
    role: str = Field(default="STUDENT", description="STUDENT or ADMIN")


class UserResponse(BaseModel):
    """Schema for user response."""

    user_id: str
    name: str
    surname: str
    role: str
    display_name: str

    model_config = ConfigDict(from_attributes=True)
