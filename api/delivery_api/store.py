"""Interfaz de almacenamiento de cuentas usada por la máquina de estados.

``SqlAccountStore`` es la implementación real sobre una ``Session`` de
SQLAlchemy; ``memory_store.InMemoryAccountStore`` expone la misma interfaz sin
base de datos. Las escrituras que consumen un token son una única sentencia
``UPDATE ... WHERE id = :id AND token = :token``: devuelven ``False`` si otra
petición consumió o reemplazó el token antes.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session

from . import crud, models
from .errors import DuplicateEmail, StoreUnavailable

logger = logging.getLogger("db")


class AccountStore(ABC):
    @abstractmethod
    def get_by_id(self, account_id: int) -> models.User | None: ...

    @abstractmethod
    def get_by_email(self, email: str) -> models.User | None: ...

    @abstractmethod
    def get_by_verification_token(self, token: str) -> models.User | None:
        """Solo cuentas sin verificar."""

    @abstractmethod
    def get_by_reset_token(self, token: str) -> models.User | None: ...

    @abstractmethod
    def insert(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        phone: Optional[str],
        verification_token: str,
        verification_expires_at: datetime,
        created_at: datetime,
    ) -> models.User:
        """Lanza ``DuplicateEmail`` si el correo ya existe."""

    @abstractmethod
    def set_verification_token(self, account_id: int, token: str, expires_at: datetime) -> bool: ...

    @abstractmethod
    def consume_verification_token(self, account_id: int, token: str) -> bool: ...

    @abstractmethod
    def set_reset_token(self, account_id: int, token: str, expires_at: datetime) -> bool: ...

    @abstractmethod
    def consume_reset_token(self, account_id: int, token: str, password_hash: str) -> bool: ...

    @abstractmethod
    def update_password(self, account_id: int, password_hash: str) -> bool: ...

    @abstractmethod
    def list_orders(self, account_id: int) -> list[models.Order]: ...

    def ping(self) -> bool:
        return True


class SqlAccountStore(AccountStore):
    def __init__(self, db: Session) -> None:
        self.db = db

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except (OperationalError, InterfaceError) as exc:
            self.db.rollback()
            logger.error("Base de datos no disponible: %s", exc.__class__.__name__)
            raise StoreUnavailable() from exc

    def get_by_id(self, account_id: int) -> models.User | None:
        with self._guard():
            return crud.get_user(self.db, account_id)

    def get_by_email(self, email: str) -> models.User | None:
        with self._guard():
            return crud.get_user_by_email(self.db, email)

    def get_by_verification_token(self, token: str) -> models.User | None:
        with self._guard():
            return crud.get_user_by_verification_token(self.db, token)

    def get_by_reset_token(self, token: str) -> models.User | None:
        with self._guard():
            return crud.get_user_by_reset_token(self.db, token)

    def insert(self, **fields) -> models.User:
        with self._guard():
            try:
                return crud.create_user(self.db, **fields)
            except IntegrityError as exc:
                self.db.rollback()
                raise DuplicateEmail() from exc

    def set_verification_token(self, account_id: int, token: str, expires_at: datetime) -> bool:
        with self._guard():
            return crud.set_verification_token(self.db, account_id, token, expires_at)

    def consume_verification_token(self, account_id: int, token: str) -> bool:
        with self._guard():
            return crud.consume_verification_token(self.db, account_id, token)

    def set_reset_token(self, account_id: int, token: str, expires_at: datetime) -> bool:
        with self._guard():
            return crud.set_reset_token(self.db, account_id, token, expires_at)

    def consume_reset_token(self, account_id: int, token: str, password_hash: str) -> bool:
        with self._guard():
            return crud.consume_reset_token(self.db, account_id, token, password_hash)

    def update_password(self, account_id: int, password_hash: str) -> bool:
        with self._guard():
            return crud.update_user_password(self.db, account_id, password_hash)

    def list_orders(self, account_id: int) -> list[models.Order]:
        with self._guard():
            return crud.list_orders_for_user(self.db, account_id)

    def ping(self) -> bool:
        try:
            with self._guard():
                self.db.execute(text("SELECT 1"))
        except StoreUnavailable:
            return False
        return True
