from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from . import models


def create_user(
    db: Session,
    *,
    name: str,
    email: str,
    password_hash: str,
    phone: Optional[str],
    verification_token: str,
    verification_expires_at: datetime,
    created_at: datetime,
) -> models.User:
    user = models.User(
        name=name,
        email=email,
        password_hash=password_hash,
        phone=phone,
        is_email_verified=False,
        email_verification_token=verification_token,
        email_verification_expires_at=verification_expires_at,
        created_at=created_at,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def get_user(db: Session, user_id: int) -> models.User | None:
    return db.get(models.User, user_id)


def get_user_by_email(db: Session, email: str) -> models.User | None:
    return db.execute(select(models.User).where(models.User.email == email)).scalar_one_or_none()


def get_user_by_verification_token(db: Session, token: str) -> models.User | None:
    stmt = select(models.User).where(
        models.User.email_verification_token == token,
        models.User.is_email_verified.is_(False),
    )
    return db.execute(stmt).scalars().first()


def get_user_by_reset_token(db: Session, token: str) -> models.User | None:
    stmt = select(models.User).where(models.User.password_reset_token == token)
    return db.execute(stmt).scalars().first()


def _update_user(db: Session, user_id: int, *conditions, **values) -> bool:
    stmt = (
        update(models.User)
        .where(models.User.id == user_id, *conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.commit()
    return result.rowcount == 1


def set_verification_token(db: Session, user_id: int, token: str, expires_at: datetime) -> bool:
    return _update_user(
        db,
        user_id,
        email_verification_token=token,
        email_verification_expires_at=expires_at,
    )


def consume_verification_token(db: Session, user_id: int, token: str) -> bool:
    return _update_user(
        db,
        user_id,
        models.User.email_verification_token == token,
        models.User.is_email_verified.is_(False),
        is_email_verified=True,
        email_verification_token=None,
        email_verification_expires_at=None,
    )


def set_reset_token(db: Session, user_id: int, token: str, expires_at: datetime) -> bool:
    return _update_user(
        db,
        user_id,
        password_reset_token=token,
        password_reset_expires_at=expires_at,
    )


def consume_reset_token(db: Session, user_id: int, token: str, password_hash: str) -> bool:
    return _update_user(
        db,
        user_id,
        models.User.password_reset_token == token,
        password_hash=password_hash,
        password_reset_token=None,
        password_reset_expires_at=None,
    )


def update_user_password(db: Session, user_id: int, password_hash: str) -> bool:
    return _update_user(db, user_id, password_hash=password_hash)


def list_orders_for_user(db: Session, user_id: int) -> list[models.Order]:
    stmt = (
        select(models.Order)
        .options(selectinload(models.Order.items))
        .where(models.Order.user_id == user_id)
        .order_by(models.Order.order_date.desc(), models.Order.id.desc())
    )
    return list(db.execute(stmt).scalars().all())


def create_order(
    db: Session,
    *,
    user_id: int,
    restaurant_name: str,
    total_amount,
    delivery_address: str,
    status: str = "pending",
    restaurant_image: Optional[str] = None,
    payment_method: Optional[str] = None,
    order_date: Optional[datetime] = None,
    items: Optional[list[dict]] = None,
) -> models.Order:
    order = models.Order(
        user_id=user_id,
        restaurant_name=restaurant_name,
        restaurant_image=restaurant_image,
        total_amount=total_amount,
        status=status,
        delivery_address=delivery_address,
        payment_method=payment_method,
        order_date=order_date or models.utcnow(),
    )
    for item in items or []:
        order.items.append(models.OrderItem(**item))
    db.add(order)
    db.commit()
    db.refresh(order)
    return order
