from fastapi import APIRouter, HTTPException, status, Request
from schemas.auth_schemas import UserResponse
from services.auth_service import AuthService
from utils.deps import user_id_dependency, store_dependency
from middleware.rate_limiter import limiter
from utils.logger import get_logger

logger = get_logger(__name__)


router = APIRouter(
    prefix="/users",
    tags=["users"]
)


@router.get("/me", status_code=status.HTTP_200_OK, response_model=UserResponse)
@limiter.limit("30/minute")
def get_user_info(request: Request, user_id: user_id_dependency, store: store_dependency):
    """
    Get current user info (protected endpoint).
    """
    user = AuthService.get_active_user_by_id(store, user_id)

    if not user:
        logger.info("Profile requested for missing or inactive user", extra={"user_id": user_id})
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return UserResponse.model_validate(user)
