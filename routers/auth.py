from fastapi import APIRouter, Request
from starlette import status
from schemas.auth_schemas import (Token, LoginResponse, LoginRequest, CreateUserRequest,
    RegisterResponse, UserResponse, RefreshTokenRequest, RevokeTokenRequest)
from services.auth_service import AuthService
from utils.deps import store_dependency, token_service_dependency, user_id_dependency
from middleware.rate_limiter import limiter
from utils.logger import get_logger

logger = get_logger(__name__)


router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=RegisterResponse)
@limiter.limit("3/minute")
def register(request: Request, body: CreateUserRequest, store: store_dependency,
             tokens: token_service_dependency):
    """
    Create an account and sign it in straight away.
    """
    user = AuthService.create_user(store, body.username, body.email, body.password)
    pair = tokens.issue_token_pair(user.id)

    return RegisterResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type=pair.token_type,
        user=UserResponse.model_validate(user)
    )


@router.post("/login", response_model=LoginResponse)
@limiter.limit("5/minute")
def login(request: Request, body: LoginRequest, tokens: token_service_dependency):
    result = tokens.login(body.identifier, body.password)

    return LoginResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        token_type=result.token_type,
        user_id=result.user_id
    )


@router.post("/refresh", response_model=Token)
@limiter.limit("10/minute")
def refresh_token(request: Request, body: RefreshTokenRequest, tokens: token_service_dependency):
    """
    Exchange a refresh token for a new token pair. The presented token is consumed.
    """
    pair = tokens.refresh(body.refresh_token)

    return Token(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type=pair.token_type
    )


@router.post("/logout", status_code=status.HTTP_200_OK)
@limiter.limit("10/minute")
def logout(request: Request, body: RevokeTokenRequest, tokens: token_service_dependency):
    tokens.logout(body.refresh_token)

    return {"message": "Logged out successfully"}


@router.post("/logout-all", status_code=status.HTTP_200_OK)
@limiter.limit("5/minute")
def logout_all(request: Request, user_id: user_id_dependency, tokens: token_service_dependency):
    """
    Revoke every refresh token of the current user (logout from all devices).
    Access tokens already handed out keep working until they expire.
    """
    revoked = tokens.revoke_all(user_id)

    return {"message": "Logged out from all devices", "revoked": revoked}
