import logging
from datetime import datetime

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import schemas
from .accounts import AccountService, AuthResult
from .auth_principal import require_account_id
from .config import get_settings
from .db import Base, engine
from .deps import get_account_service, get_minter, get_store
from .errors import AuthError
from .middleware import RateLimitMiddleware, RequestLogMiddleware, SecurityHeadersMiddleware
from .orders import order_stats, serialize_order
from .store import AccountStore

logging.basicConfig(level=logging.INFO)

settings = get_settings()

# falla al arrancar si no hay secreto de firma fuera de DEV_MODE
get_minter()

if settings.dev_mode:
    Base.metadata.create_all(bind=engine)
    logging.getLogger("db").warning("create_all() ejecutado en dev mode. Usar Alembic en producción.")

app = FastAPI(title="Food Delivery API", version="1.0.0")

if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

app.add_middleware(RateLimitMiddleware, limit_per_minute=settings.rate_limit_per_min, redis_url=settings.redis_url)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLogMiddleware)

VERIFY_EMAIL_OK = "Correo verificado correctamente"
FORGOT_PASSWORD_MESSAGE = "Si el correo existe, recibirás instrucciones para restablecer tu contraseña."


@app.exception_handler(AuthError)
def handle_auth_error(request: Request, exc: AuthError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "detail": exc.to_dict()},
        headers=headers,
    )


def _auth_response(result: AuthResult, message: str) -> schemas.AuthResponse:
    return schemas.AuthResponse(
        message=message,
        user=schemas.UserOut.model_validate(result.account),
        access_token=result.access_token,
    )


@app.get("/")
def read_root() -> dict:
    return {
        "message": "Food Delivery API",
        "endpoints": {
            "health": "/health",
            "register": "/auth/register (POST)",
            "login": "/auth/login (POST)",
            "verify_email": "/auth/verify-email",
            "forgot_password": "/auth/forgot-password (POST)",
            "reset_password": "/auth/reset-password (POST)",
            "user": "/users/me (GET)",
            "stats": "/users/me/stats (GET)",
            "orders": "/users/me/orders (GET)",
        },
    }


@app.get("/health")
def health_check(store: AccountStore = Depends(get_store)) -> dict:
    return {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "database": "connected" if store.ping() else "disconnected",
    }


@app.post("/auth/register", response_model=schemas.AuthResponse, status_code=201)
@app.post("/register", response_model=schemas.AuthResponse, status_code=201, include_in_schema=False)
def register_user(
    payload: schemas.UserCreate,
    service: AccountService = Depends(get_account_service),
) -> schemas.AuthResponse:
    if not settings.registration_enabled:
        raise HTTPException(status_code=403, detail="Registro deshabilitado")
    result = service.register(payload.name, payload.email, payload.password, payload.phone)
    return _auth_response(result, "Registro exitoso. Revisa tu correo para verificar la cuenta.")


@app.post("/auth/login", response_model=schemas.AuthResponse)
@app.post("/login", response_model=schemas.AuthResponse, include_in_schema=False)
def login_user(
    payload: schemas.LoginRequest,
    service: AccountService = Depends(get_account_service),
) -> schemas.AuthResponse:
    result = service.login(payload.email, payload.password)
    return _auth_response(result, "Inicio de sesión exitoso")


@app.get("/auth/verify-email", response_model=schemas.MessageResponse)
@app.get("/verify-email", response_model=schemas.MessageResponse, include_in_schema=False)
def verify_email_link(
    token: str = Query(default=""),
    service: AccountService = Depends(get_account_service),
) -> schemas.MessageResponse:
    service.verify_email(token)
    return schemas.MessageResponse(message=VERIFY_EMAIL_OK)


@app.post("/auth/verify-email", response_model=schemas.MessageResponse)
def verify_email(
    payload: schemas.VerifyEmailRequest,
    service: AccountService = Depends(get_account_service),
) -> schemas.MessageResponse:
    service.verify_email(payload.token)
    return schemas.MessageResponse(message=VERIFY_EMAIL_OK)


@app.post("/auth/resend-verification", response_model=schemas.MessageResponse)
def resend_verification(
    account_id: int = Depends(require_account_id),
    service: AccountService = Depends(get_account_service),
) -> schemas.MessageResponse:
    service.resend_verification(account_id)
    return schemas.MessageResponse(message="Correo de verificación reenviado")


@app.post("/auth/forgot-password", response_model=schemas.MessageResponse)
def forgot_password(
    payload: schemas.ForgotPasswordRequest,
    service: AccountService = Depends(get_account_service),
) -> schemas.MessageResponse:
    service.request_password_reset(payload.email)
    return schemas.MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@app.post("/auth/reset-password", response_model=schemas.MessageResponse)
def reset_password(
    payload: schemas.ResetPasswordRequest,
    service: AccountService = Depends(get_account_service),
) -> schemas.MessageResponse:
    service.reset_password(payload.token, payload.new_password)
    return schemas.MessageResponse(message="Contraseña restablecida. Ya puedes iniciar sesión.")


@app.post("/users/me/password", response_model=schemas.MessageResponse)
def change_password(
    payload: schemas.PasswordChangeRequest,
    account_id: int = Depends(require_account_id),
    service: AccountService = Depends(get_account_service),
) -> schemas.MessageResponse:
    service.change_password(account_id, payload.current_password, payload.new_password)
    return schemas.MessageResponse(message="Contraseña actualizada")


@app.get("/users/me", response_model=schemas.UserOut)
def get_profile(
    account_id: int = Depends(require_account_id),
    service: AccountService = Depends(get_account_service),
) -> schemas.UserOut:
    return schemas.UserOut.model_validate(service.get_account(account_id))


@app.get("/users/me/orders", response_model=schemas.OrderHistoryOut)
def list_my_orders(
    account_id: int = Depends(require_account_id),
    service: AccountService = Depends(get_account_service),
) -> dict:
    account = service.get_account(account_id)
    return {"orders": [serialize_order(order) for order in service.store.list_orders(account.id)]}


@app.get("/users/me/stats", response_model=schemas.OrderStatsOut)
def my_order_stats(
    account_id: int = Depends(require_account_id),
    service: AccountService = Depends(get_account_service),
) -> dict:
    account = service.get_account(account_id)
    return order_stats(service.store.list_orders(account.id))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("delivery_api.main:app", host="0.0.0.0", port=8000)
