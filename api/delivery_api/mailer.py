import logging
import smtplib
from concurrent.futures import ThreadPoolExecutor
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

from .config import Settings

logger = logging.getLogger("mail")


class Mailer(Protocol):
    def send(self, to: str, subject: str, html_body: str) -> bool: ...


class SmtpMailer:
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        user: str | None = None,
        password: str | None = None,
        use_ssl: bool = False,
        timeout: int = 10,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.user = user
        self.password = password
        self.use_ssl = use_ssl
        self.timeout = timeout

    def _connect(self) -> smtplib.SMTP:
        if self.use_ssl:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        server.starttls()
        return server

    def send(self, to: str, subject: str, html_body: str) -> bool:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.attach(MIMEText(html_body, "html"))
        try:
            with self._connect() as server:
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.sendmail(self.sender, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Error al enviar correo '%s': %s", subject, exc)
            return False
        logger.info("Correo '%s' enviado", subject)
        return True


class LogMailer:
    """Sin SMTP configurado: solo deja constancia del envío."""

    def send(self, to: str, subject: str, html_body: str) -> bool:
        logger.info("SMTP no configurado; correo '%s' no enviado", subject)
        return True


class BackgroundMailer:
    """Envía en un pool de hilos acotado; ``send`` vuelve en cuanto encola."""

    def __init__(self, inner: Mailer, max_workers: int = 2) -> None:
        self.inner = inner
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="mail")

    def send(self, to: str, subject: str, html_body: str) -> bool:
        try:
            future = self._executor.submit(self.inner.send, to, subject, html_body)
        except RuntimeError as exc:
            logger.error("No se pudo encolar el correo '%s': %s", subject, exc)
            return False
        future.add_done_callback(self._log_failure)
        return True

    @staticmethod
    def _log_failure(future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error("Fallo inesperado enviando correo: %s", exc)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)


def build_mailer(settings: Settings) -> Mailer:
    if settings.smtp_configured:
        inner: Mailer = SmtpMailer(
            settings.smtp_host,
            settings.smtp_port,
            settings.smtp_from,
            user=settings.smtp_user,
            password=settings.smtp_password,
            use_ssl=settings.smtp_use_ssl,
        )
    else:
        inner = LogMailer()
    return BackgroundMailer(inner, max_workers=max(1, settings.mail_workers))
