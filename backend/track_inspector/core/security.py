"""Password hashing for staff accounts.

Only the one-way hash is stored; there is no login endpoint, so nothing in
the API reads a password back.
"""

from passlib.context import CryptContext


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Salted bcrypt hash of ``plain_password``, as written to ``users.hashed_password``."""
    return pwd_context.hash(plain_password)
