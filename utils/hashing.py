from functools import lru_cache
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=['bcrypt'], deprecated='auto')

# bcrypt only looks at the first 72 bytes of a secret
BCRYPT_MAX_BYTES = 72


def _truncate(password: str) -> str:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES].decode("utf-8", errors="ignore")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(_truncate(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(_truncate(plain_password), hashed_password)


@lru_cache
def _dummy_hash() -> str:
    return get_password_hash("dummy-password-for-unknown-accounts")


def verify_password_against_dummy(plain_password: str) -> bool:
    """
    Runs a full bcrypt verification against a throwaway hash.

    Used when a login names an account that does not exist, so that the
    request costs the same as a wrong password for a real account.

    Returns:
        Always False
    """
    pwd_context.verify(_truncate(plain_password), _dummy_hash())
    return False
