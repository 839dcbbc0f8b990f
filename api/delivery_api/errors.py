from typing import Any


class AuthError(Exception):
    """Base de los errores tipados del ciclo de vida de credenciales.

    Cada subclase fija un ``code`` estable para el cliente y el ``status_code``
    HTTP con el que la capa de rutas lo expone.
    """

    code = "auth_error"
    status_code = 400
    message = "Solicitud inválida"

    def __init__(self, message: str | None = None, **extra: Any) -> None:
        self.message = message or self.message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.extra}


class ValidationError(AuthError):
    code = "validation_error"
    status_code = 400
    message = "Datos inválidos"


class TokenMissingOrTooShortPassword(ValidationError):
    message = "Token y nueva contraseña (mínimo 6 caracteres) son obligatorios"


class DuplicateEmail(AuthError):
    code = "duplicate_email"
    status_code = 409
    message = "El correo ya está registrado"


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    status_code = 401
    message = "Credenciales inválidas"


class InvalidOrUnknownToken(AuthError):
    code = "invalid_token"
    status_code = 400
    message = "Token inválido"


class TokenExpired(AuthError):
    code = "token_expired"
    status_code = 400
    message = "El token ha expirado"


class AlreadyVerified(AuthError):
    code = "already_verified"
    status_code = 409
    message = "El correo ya está verificado"


class EmailNotVerified(AuthError):
    code = "email_not_verified"
    status_code = 403
    message = "Debe verificar su correo antes de iniciar sesión"

    def __init__(self, message: str | None = None, **extra: Any) -> None:
        extra.setdefault("email_not_verified", True)
        super().__init__(message, **extra)


class WrongCurrentPassword(AuthError):
    code = "wrong_current_password"
    status_code = 400
    message = "Contraseña actual inválida"


class Unauthorized(AuthError):
    code = "unauthorized"
    status_code = 401
    message = "Autenticación requerida"


class StoreUnavailable(AuthError):
    code = "store_unavailable"
    status_code = 503
    message = "Error del servidor"
