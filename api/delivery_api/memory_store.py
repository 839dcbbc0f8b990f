import threading
from datetime import datetime
from itertools import count
from typing import Optional

from . import models
from .errors import DuplicateEmail
from .store import AccountStore


def _snapshot(user: models.User | None) -> models.User | None:
    if user is None:
        return None
    return models.User(**{column.key: getattr(user, column.key) for column in models.User.__table__.columns})


class InMemoryAccountStore(AccountStore):
    """Almacén sin base de datos para tests y desarrollo local.

    Un único lock serializa cada operación, así que las actualizaciones que
    consumen tokens son tan atómicas como el ``UPDATE`` condicional del
    almacén SQL. Las lecturas devuelven copias tomadas bajo el lock, nunca
    las filas vivas.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = count(1)
        self._order_ids = count(1)
        self._users: dict[int, models.User] = {}
        self._orders: dict[int, list[models.Order]] = {}

    def get_by_id(self, account_id: int) -> models.User | None:
        with self._lock:
            return _snapshot(self._users.get(account_id))

    def get_by_email(self, email: str) -> models.User | None:
        with self._lock:
            return _snapshot(self._find(lambda user: user.email == email))

    def get_by_verification_token(self, token: str) -> models.User | None:
        with self._lock:
            return _snapshot(
                self._find(lambda user: user.email_verification_token == token and not user.is_email_verified)
            )

    def get_by_reset_token(self, token: str) -> models.User | None:
        with self._lock:
            return _snapshot(self._find(lambda user: user.password_reset_token == token))

    def _find(self, predicate) -> models.User | None:
        for user in self._users.values():
            if predicate(user):
                return user
        return None

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
        with self._lock:
            if self._find(lambda user: user.email == email):
                raise DuplicateEmail()
            user = models.User(
                id=next(self._ids),
                name=name,
                email=email,
                password_hash=password_hash,
                phone=phone,
                avatar_url=None,
                is_email_verified=False,
                email_verification_token=verification_token,
                email_verification_expires_at=verification_expires_at,
                password_reset_token=None,
                password_reset_expires_at=None,
                created_at=created_at,
            )
            self._users[user.id] = user
            return _snapshot(user)

    def set_verification_token(self, account_id: int, token: str, expires_at: datetime) -> bool:
        with self._lock:
            user = self._users.get(account_id)
            if not user:
                return False
            user.email_verification_token = token
            user.email_verification_expires_at = expires_at
            return True

    def consume_verification_token(self, account_id: int, token: str) -> bool:
        with self._lock:
            user = self._users.get(account_id)
            if not user or user.is_email_verified or user.email_verification_token != token:
                return False
            user.is_email_verified = True
            user.email_verification_token = None
            user.email_verification_expires_at = None
            return True

    def set_reset_token(self, account_id: int, token: str, expires_at: datetime) -> bool:
        with self._lock:
            user = self._users.get(account_id)
            if not user:
                return False
            user.password_reset_token = token
            user.password_reset_expires_at = expires_at
            return True

    def consume_reset_token(self, account_id: int, token: str, password_hash: str) -> bool:
        with self._lock:
            user = self._users.get(account_id)
            if not user or user.password_reset_token != token:
                return False
            user.password_hash = password_hash
            user.password_reset_token = None
            user.password_reset_expires_at = None
            return True

    def update_password(self, account_id: int, password_hash: str) -> bool:
        with self._lock:
            user = self._users.get(account_id)
            if not user:
                return False
            user.password_hash = password_hash
            return True

    def add_order(self, account_id: int, *, items: Optional[list[dict]] = None, **fields) -> models.Order:
        fields.setdefault("status", "pending")
        fields.setdefault("order_date", models.utcnow())
        order = models.Order(id=next(self._order_ids), user_id=account_id, **fields)
        for item in items or []:
            order.items.append(models.OrderItem(**{"quantity": 1, **item}))
        with self._lock:
            self._orders.setdefault(account_id, []).append(order)
        return order

    def list_orders(self, account_id: int) -> list[models.Order]:
        with self._lock:
            orders = list(self._orders.get(account_id, []))
        return sorted(orders, key=lambda order: (order.order_date, order.id), reverse=True)
