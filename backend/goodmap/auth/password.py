import bcrypt

from goodmap.core.config import settings

# bcrypt only looks at the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:MAX_PASSWORD_BYTES]


class PasswordManager:
    """Salted bcrypt hashing for post passwords and admin accounts."""

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_encode(password), salt).decode("utf-8")

    def verify_password(self, password: str, hashed_password: str) -> bool:
        """Constant-time check of a plaintext password against a stored hash."""
        if not password or not hashed_password:
            return False
        try:
            return bcrypt.checkpw(_encode(password), hashed_password.encode("utf-8"))
        except ValueError:
            # Malformed or non-bcrypt hash
            return False

    def needs_rehash(self, hashed_password: str) -> bool:
        """True when the stored hash uses a lower cost factor than configured."""
        try:
            cost = int(hashed_password.split("$")[2])
        except (IndexError, ValueError):
            return True
        return cost < self.rounds


# Global password manager instance
password_manager = PasswordManager(rounds=settings.password_hash_rounds)
