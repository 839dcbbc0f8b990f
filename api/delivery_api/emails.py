from html import escape
from urllib.parse import urlencode

_TEMPLATE = """<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; color: #333;">
  <h2>Hola, {name}</h2>
  <p>{intro}</p>
  <p><a href="{link}">{action}</a></p>
  <p>Si el botón no funciona, copia este enlace en tu navegador:<br/>{link}</p>
  <p style="color: #777; font-size: 12px;">{footer}</p>
</body>
</html>
"""


def build_link(base_url: str, path: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/{path}?{urlencode({'token': token})}"


def verification_link(base_url: str, token: str) -> str:
    return build_link(base_url, "verify-email", token)


def reset_link(base_url: str, token: str) -> str:
    return build_link(base_url, "reset-password", token)


def verification_email(name: str, link: str, ttl_hours: int) -> tuple[str, str]:
    body = _TEMPLATE.format(
        name=escape(name),
        intro="Gracias por registrarte. Confirma tu dirección de correo electrónico.",
        link=escape(link),
        action="Verificar correo",
        footer=f"El enlace vence en {ttl_hours} horas.",
    )
    return "Verificación de correo electrónico", body


def reset_email(name: str, link: str, ttl_minutes: int) -> tuple[str, str]:
    body = _TEMPLATE.format(
        name=escape(name),
        intro="Hemos recibido una solicitud para restablecer tu contraseña.",
        link=escape(link),
        action="Restablecer contraseña",
        footer=f"El enlace vence en {ttl_minutes} minutos. Si no lo solicitaste, ignora este correo.",
    )
    return "Restablecimiento de contraseña", body
