"""
Journey password hashing with bcrypt.
"""

from typing import Optional

import bcrypt

from shared.config import get_settings

from .interfaces import IPasswordHasher


class BcryptPasswordHasher(IPasswordHasher):
    """Salted bcrypt hashes; rounds come from settings unless given."""

    def __init__(self, rounds: Optional[int] = None):
        self._rounds = rounds if rounds is not None else get_settings().password_hash_rounds

    def hash(self, password: str) -> str:
        return bcrypt.hashpw(
            password.encode("utf-8"),
            bcrypt.gensalt(rounds=self._rounds),
        ).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            # Malformed stored hash
            return False
