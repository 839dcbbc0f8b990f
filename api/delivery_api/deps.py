from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from .accounts import AccountService
from .auth import TokenMinter
from .config import get_settings
from .db import get_db
from .hashing import CredentialHasher
from .mailer import Mailer, build_mailer
from .store import AccountStore, SqlAccountStore


@lru_cache
def get_minter() -> TokenMinter:
    return TokenMinter.from_settings(get_settings())


@lru_cache
def get_hasher() -> CredentialHasher:
    return CredentialHasher(rounds=get_settings().hash_rounds)


@lru_cache
def get_mailer() -> Mailer:
    return build_mailer(get_settings())


def get_store(db: Session = Depends(get_db)) -> AccountStore:
    return SqlAccountStore(db)


def get_account_service(
    store: AccountStore = Depends(get_store),
    hasher: CredentialHasher = Depends(get_hasher),
    minter: TokenMinter = Depends(get_minter),
    mailer: Mailer = Depends(get_mailer),
) -> AccountService:
    return AccountService(store, hasher, minter, mailer, get_settings())
