from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from .config import get_settings


class Base(DeclarativeBase):
    pass


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def build_engine(url: str, **kwargs):
    connect_args = {"check_same_thread": False} if _is_sqlite(url) else {}
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args, **kwargs)


DATABASE_URL = get_settings().database_url
engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
