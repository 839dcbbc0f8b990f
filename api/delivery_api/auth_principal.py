from typing import Optional

from fastapi import Depends, Request

from .auth import TokenMinter
from .deps import get_minter
from .errors import Unauthorized


def _extract_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, credentials = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return credentials.strip() or None


def authenticate(request: Request, minter: TokenMinter) -> int:
    token = _extract_token(request)
    account_id = minter.verify(token) if token else None
    if account_id is None:
        raise Unauthorized()
    return account_id


def require_account_id(request: Request, minter: TokenMinter = Depends(get_minter)) -> int:
    return authenticate(request, minter)
