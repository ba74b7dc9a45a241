"""Password hashing, delegated to werkzeug.security."""

from werkzeug.security import check_password_hash, generate_password_hash


class PasswordHasher:

    def __init__(self, method: str = "scrypt"):
        self._method = method

    def hash(self, password: str) -> str:
        return generate_password_hash(password, method=self._method)

    def verify(self, password: str, password_hash: str) -> bool:
        return check_password_hash(password_hash, password)
