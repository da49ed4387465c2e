import re
from pydantic import BaseModel, ConfigDict, EmailStr, Field, AliasChoices, field_validator


def _validate_password(value: str) -> str:
    """
    Password must be at least 8 characters and contain:
    - At least one letter
    - At least one digit
    """
    if len(value) < 8:
        raise ValueError('Password must be at least 8 characters')

    if not re.search(r'[A-Za-z]', value):
        raise ValueError('Password must contain at least one letter')

    if not re.search(r'\d', value):
        raise ValueError('Password must contain at least one digit')

    return value


def _not_blank(value: str) -> str:
    if not value or not value.strip():
        raise ValueError('Refresh token cannot be empty')
    return value


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginResponse(Token):
    user_id: int


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: EmailStr
    profile_picture: str = ""


class RegisterResponse(Token):
    user: UserResponse


class CreateUserRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50, pattern=r'^[A-Za-z0-9_.-]+$')
    email: EmailStr
    password: str

    @field_validator('password')
    @classmethod
    def validate_password(cls, value):
        return _validate_password(value)


class LoginRequest(BaseModel):
    # Accepts {identifier}, {email} or {username} alongside the password
    identifier: str = Field(
        min_length=1,
        validation_alias=AliasChoices('identifier', 'email', 'username')
    )
    password: str = Field(min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(validation_alias=AliasChoices('refresh_token', 'refreshToken'))

    @field_validator('refresh_token')
    @classmethod
    def validate_token(cls, value):
        return _not_blank(value)


class RevokeTokenRequest(BaseModel):
    refresh_token: str = Field(validation_alias=AliasChoices('refresh_token', 'refreshToken'))

    @field_validator('refresh_token')
    @classmethod
    def validate_token(cls, value):
        return _not_blank(value)
