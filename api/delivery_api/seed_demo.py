from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from . import crud, models
from .auth import generate_single_use_token
from .db import Base, SessionLocal, engine
from .deps import get_hasher

DEMO_EMAIL = "ivan@example.com"
DEMO_PASSWORD = "password123"


def _get_or_create_user(db, name: str, email: str, password: str, phone: str | None) -> models.User:
    user = crud.get_user_by_email(db, email)
    if user:
        return user
    now = datetime.utcnow()
    user = crud.create_user(
        db,
        name=name,
        email=email,
        password_hash=get_hasher().hash(password),
        phone=phone,
        verification_token=generate_single_use_token(),
        verification_expires_at=now + timedelta(hours=24),
        created_at=now,
    )
    # la cuenta demo entra ya verificada
    crud.consume_verification_token(db, user.id, user.email_verification_token)
    return user


def _seed_orders(db, user: models.User) -> None:
    if crud.list_orders_for_user(db, user.id):
        return
    now = datetime.utcnow()
    crud.create_order(
        db,
        user_id=user.id,
        restaurant_name="Пицца Мания",
        restaurant_image="https://images.unsplash.com/photo-1565299624946-b28f40a0ae38?w=400",
        total_amount=Decimal("1398.00"),
        status="delivered",
        delivery_address="ул. Ленина, д. 10, кв. 5",
        payment_method="Картой онлайн",
        order_date=now - timedelta(days=3),
        items=[
            {
                "dish_name": "Пепперони",
                "dish_description": "Пицца с колбасками пепперони и сыром моцарелла",
                "dish_price": Decimal("699.00"),
                "dish_image": "https://images.unsplash.com/photo-1628840042765-356cda07504e?w=400",
                "ingredients": ["Тесто", "Томатный соус", "Пепперони", "Моцарелла"],
                "quantity": 2,
            }
        ],
    )
    crud.create_order(
        db,
        user_id=user.id,
        restaurant_name="Бургер Кинг",
        restaurant_image="https://images.unsplash.com/photo-1568901346375-23c9450c58cd?w=400",
        total_amount=Decimal("299.00"),
        status="pending",
        delivery_address="ул. Ленина, д. 10, кв. 5",
        payment_method="Наличными",
        order_date=now - timedelta(hours=2),
        items=[
            {
                "dish_name": "Чизбургер",
                "dish_description": "Классический бургер с сыром",
                "dish_price": Decimal("299.00"),
                "ingredients": ["Булочка", "Говяжья котлета", "Сыр", "Лук", "Кетчуп"],
            }
        ],
    )


def seed_demo() -> None:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        user = _get_or_create_user(db, "Иван Иванов", DEMO_EMAIL, DEMO_PASSWORD, "+7 (999) 123-45-67")
        _seed_orders(db, user)


if __name__ == "__main__":
    seed_demo()
    print("Seed demo aplicado.")
