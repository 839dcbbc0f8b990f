from passlib.context import CryptContext
from passlib.exc import UnknownHashError

DEFAULT_ROUNDS = 10


class CredentialHasher:
    """bcrypt con sal embebida en el digest. ``rounds`` es el factor de coste."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str | None) -> bool:
        if not password_hash:
            self.dummy_verify()
            return False
        try:
            return self._context.verify(password, password_hash)
        except (ValueError, TypeError, UnknownHashError):
            # mismo coste que un digest válido
            self.dummy_verify()
            return False

    def dummy_verify(self) -> None:
        self._context.dummy_verify()
