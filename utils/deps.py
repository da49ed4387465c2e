from functools import lru_cache
from typing import Annotated
from fastapi import Depends, Header
from sqlalchemy.orm import Session
from core.config import settings
from core.database import SessionLocal
from services.signing_service import SigningService
from services.token_service import TokenService
from services.user_store import UserStore


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

db_dependency = Annotated[Session, Depends(get_db)]


@lru_cache
def get_signing_service() -> SigningService:
    # Raises ConfigurationError when SECRET_KEY is missing
    return SigningService.from_settings(settings)


def get_user_store(db: db_dependency) -> UserStore:
    return UserStore(db)

store_dependency = Annotated[UserStore, Depends(get_user_store)]


def get_token_service(store: store_dependency,
                      signer: Annotated[SigningService, Depends(get_signing_service)]) -> TokenService:
    return TokenService(store, signer)

token_service_dependency = Annotated[TokenService, Depends(get_token_service)]


def get_current_user_id(tokens: token_service_dependency,
                        authorization: Annotated[str | None, Header()] = None) -> int:
    return tokens.authenticate(authorization)

user_id_dependency = Annotated[int, Depends(get_current_user_id)]
