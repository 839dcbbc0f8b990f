"""Máquina de estados de la cuenta: registro, verificación de correo,
recuperación y cambio de contraseña, login.

Dos ejes independientes por cuenta:

* verificación: sin verificar (token vigente) -> sin verificar (token
  vencido) -> verificada (token borrado, ``is_email_verified`` en True);
* recuperación: sin reset pendiente -> reset pendiente -> reset vencido ->
  sin reset pendiente tras consumirlo.

Un token vencido no se borra al fallar: hace falta reenviarlo o pedir otro.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from . import emails, models
from .auth import TokenMinter, generate_single_use_token
from .config import Settings
from .errors import (
    AlreadyVerified,
    DuplicateEmail,
    EmailNotVerified,
    InvalidCredentials,
    InvalidOrUnknownToken,
    TokenExpired,
    TokenMissingOrTooShortPassword,
    Unauthorized,
    ValidationError,
    WrongCurrentPassword,
)
from .hashing import CredentialHasher
from .mailer import Mailer
from .store import AccountStore

logger = logging.getLogger("auth")

MIN_PASSWORD_LENGTH = 6
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def _password_ok(password: Optional[str]) -> bool:
    return bool(password) and len(password) >= MIN_PASSWORD_LENGTH


@dataclass
class AuthResult:
    account: models.User
    access_token: str


class AccountService:
    def __init__(
        self,
        store: AccountStore,
        hasher: CredentialHasher,
        minter: TokenMinter,
        mailer: Mailer,
        settings: Settings,
        clock: Callable[[], datetime] = models.utcnow,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.minter = minter
        self.mailer = mailer
        self.settings = settings
        self.clock = clock

    @property
    def verification_ttl(self) -> timedelta:
        return timedelta(hours=self.settings.verification_ttl_hours)

    @property
    def reset_ttl(self) -> timedelta:
        return timedelta(minutes=self.settings.reset_ttl_minutes)

    def register(
        self,
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        phone: Optional[str] = None,
    ) -> AuthResult:
        name = (name or "").strip()
        email = normalize_email(email)
        if not name or not email or not password:
            raise ValidationError("Nombre, correo y contraseña son obligatorios")
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Formato de correo inválido")
        if not _password_ok(password):
            raise ValidationError(f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres")
        if self.store.get_by_email(email):
            raise DuplicateEmail()

        now = self.clock()
        token = generate_single_use_token()
        # una carrera con el mismo correo la resuelve la restricción única
        account = self.store.insert(
            name=name,
            email=email,
            password_hash=self.hasher.hash(password),
            phone=(phone or "").strip() or None,
            verification_token=token,
            verification_expires_at=now + self.verification_ttl,
            created_at=now,
        )
        logger.info("Cuenta %s registrada", account.id)
        self._send_verification(account.email, account.name, token)
        return AuthResult(account=account, access_token=self.minter.issue(account.id))

    def verify_email(self, token: Optional[str]) -> models.User:
        if not token:
            raise InvalidOrUnknownToken()
        account = self.store.get_by_verification_token(token)
        if not account:
            raise InvalidOrUnknownToken()
        expires_at = account.email_verification_expires_at
        if expires_at is None or expires_at < self.clock():
            raise TokenExpired("El enlace de verificación ha expirado. Solicita uno nuevo.")
        if not self.store.consume_verification_token(account.id, token):
            # otra petición lo consumió o lo reemplazó primero
            raise InvalidOrUnknownToken()
        logger.info("Correo de la cuenta %s verificado", account.id)
        return self.store.get_by_id(account.id)

    def resend_verification(self, account_id: int) -> None:
        account = self.get_account(account_id)
        if account.is_email_verified:
            raise AlreadyVerified()
        token = generate_single_use_token()
        self.store.set_verification_token(account.id, token, self.clock() + self.verification_ttl)
        self._send_verification(account.email, account.name, token)

    def request_password_reset(self, email: Optional[str]) -> None:
        account = self.store.get_by_email(normalize_email(email)) if email else None
        if not account:
            return
        token = generate_single_use_token()
        self.store.set_reset_token(account.id, token, self.clock() + self.reset_ttl)
        link = emails.reset_link(self.settings.app_base_url, token)
        if self.settings.dev_mode:
            logger.warning("[DEV] Enlace de recuperación para la cuenta %s: %s", account.id, link)
        subject, body = emails.reset_email(account.name, link, self.settings.reset_ttl_minutes)
        self._dispatch(account.email, subject, body)

    def reset_password(self, token: Optional[str], new_password: Optional[str]) -> None:
        if not token or not _password_ok(new_password):
            raise TokenMissingOrTooShortPassword()
        account = self.store.get_by_reset_token(token)
        if not account:
            raise InvalidOrUnknownToken()
        expires_at = account.password_reset_expires_at
        if expires_at is None or expires_at < self.clock():
            raise TokenExpired("El enlace de recuperación ha expirado. Solicita uno nuevo.")
        if not self.store.consume_reset_token(account.id, token, self.hasher.hash(new_password)):
            raise InvalidOrUnknownToken()
        logger.info("Contraseña de la cuenta %s restablecida", account.id)

    def change_password(self, account_id: int, current_password: Optional[str], new_password: Optional[str]) -> None:
        if not _password_ok(new_password):
            raise ValidationError(f"La nueva contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres")
        account = self.get_account(account_id)
        if not self.hasher.verify(current_password or "", account.password_hash):
            raise WrongCurrentPassword()
        self.store.update_password(account.id, self.hasher.hash(new_password))
        logger.info("Contraseña de la cuenta %s actualizada", account.id)

    def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("Introduce correo y contraseña")
        account = self.store.get_by_email(email)
        if not account:
            self.hasher.dummy_verify()
            raise InvalidCredentials()
        if not self.hasher.verify(password, account.password_hash):
            raise InvalidCredentials()
        if self.settings.require_verified_email and not account.is_email_verified:
            raise EmailNotVerified()
        return AuthResult(account=account, access_token=self.minter.issue(account.id))

    def get_account(self, account_id: int) -> models.User:
        account = self.store.get_by_id(account_id)
        if not account:
            raise Unauthorized()
        return account

    def _send_verification(self, email: str, name: str, token: str) -> None:
        link = emails.verification_link(self.settings.app_base_url, token)
        if self.settings.dev_mode:
            logger.warning("[DEV] Enlace de verificación para %s: %s", email, link)
        subject, body = emails.verification_email(name, link, self.settings.verification_ttl_hours)
        self._dispatch(email, subject, body)

    def _dispatch(self, to: str, subject: str, body: str) -> None:
        try:
            sent = self.mailer.send(to, subject, body)
        except Exception:
            logger.exception("Fallo enviando '%s'", subject)
            return
        if not sent:
            logger.warning("Correo '%s' no enviado", subject)
