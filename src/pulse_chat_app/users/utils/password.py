from typing import Optional
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

ph = PasswordHasher()


def hash_password(password: str) -> str:
    return ph.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """False on mismatch and on a stored value that is not an argon2 hash."""
    try:
        return ph.verify(hashed_password, plain_password)
    except (VerificationError, InvalidHashError):
        return False


def rehash_if_needed(plain_password: str, hashed_password: str) -> Optional[str]:
    """A fresh hash when the stored one was made with older hasher parameters."""
    if ph.check_needs_rehash(hashed_password):
        return ph.hash(plain_password)
    return None
