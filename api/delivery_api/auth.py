import logging
import secrets
from datetime import datetime, timedelta

from jose import JWTError, jwt

from .config import Settings

logger = logging.getLogger("security")

ALGORITHM = "HS256"
TOKEN_TYPE = "access"
DEV_DEFAULT_SECRET = "dev-insecure-change-me-in-production"
INSECURE_SECRETS = {"change-me", "changeme", "secret", "test", ""}
MIN_SECRET_LENGTH = 32
SINGLE_USE_TOKEN_BYTES = 32


def generate_single_use_token() -> str:
    return secrets.token_hex(SINGLE_USE_TOKEN_BYTES)


def resolve_jwt_secret(secret: str | None, dev_mode: bool) -> str:
    if not secret or secret in INSECURE_SECRETS:
        if dev_mode:
            logger.critical("JWT_SECRET no configurado. Usando default inseguro solo para DEV.")
            return DEV_DEFAULT_SECRET
        raise RuntimeError(
            "JWT_SECRET no está configurado o es inseguro. "
            f"Configura JWT_SECRET con al menos {MIN_SECRET_LENGTH} caracteres."
        )
    if len(secret) < MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET demasiado corto ({len(secret)} chars). Mínimo {MIN_SECRET_LENGTH} caracteres."
        )
    return secret


class TokenMinter:
    """Emite y verifica tokens de sesión JWT firmados y con expiración.

    Los tokens no se guardan en ningún sitio: no hay revocación antes de ``exp``.
    """

    def __init__(self, secret: str, ttl: timedelta = timedelta(days=7)) -> None:
        if not secret:
            raise RuntimeError("TokenMinter requiere un secreto de firma")
        self._secret = secret
        self.ttl = ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenMinter":
        secret = resolve_jwt_secret(settings.jwt_secret, settings.dev_mode)
        return cls(secret, ttl=timedelta(days=settings.jwt_expires_days))

    def issue(self, account_id: int, now: datetime | None = None) -> str:
        issued_at = now or datetime.utcnow()
        payload = {
            "sub": str(account_id),
            "iat": issued_at,
            "exp": issued_at + self.ttl,
            "type": TOKEN_TYPE,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str | None) -> int | None:
        if not token:
            return None
        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except JWTError:
            return None
        if payload.get("type") != TOKEN_TYPE:
            return None
        subject = payload.get("sub")
        try:
            return int(subject)
        except (TypeError, ValueError):
            return None
