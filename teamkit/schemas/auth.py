"""
Authentication Schemas

Logins are global: no team is named here. Which teams an actor can reach
is decided per request from their memberships.
"""
from pydantic import BaseModel, EmailStr, Field, field_validator


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class _Credentials(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        # Invitations are matched on the lowercased address
        return value.lower()


class LoginRequest(_Credentials):
    password: str = Field(..., min_length=8)


class RegisterRequest(_Credentials):
    # bcrypt ignores anything past 72 bytes
    password: str = Field(..., min_length=8, max_length=70)
    full_name: str = Field(..., min_length=1, max_length=255)

    class Config:
        json_schema_extra = {
            "example": {
                "email": "jane@clinic.example.com",
                "password": "correct-horse-battery",
                "full_name": "Jane Doe"
            }
        }
