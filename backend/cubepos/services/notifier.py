# Overview: Outbound email transports used for reminders and stock alerts.

from __future__ import annotations

import logging
import smtplib
from contextlib import contextmanager
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid

from ..validation import DeliveryError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundEmail:
    to: str
    subject: str
    html_body: str
    text_body: str = ""


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    message_id: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {"success": self.success, "message_id": self.message_id, "error": self.error}


class Notifier:
    """
    Email transport.

    send() never raises and never retries: transport problems come back as
    DeliveryResult(success=False, error=...). Callers decide what to record.
    """

    def init(self) -> None:
        pass

    def shutdown(self) -> None:
        pass

    def send(self, message: OutboundEmail) -> DeliveryResult:
        try:
            message_id = self._transmit(message)
        except DeliveryError as exc:
            logger.warning("Email to %s failed: %s", message.to, exc)
            return DeliveryResult(success=False, error=str(exc))
        except Exception as exc:
            logger.exception("Email to %s failed unexpectedly", message.to)
            return DeliveryResult(success=False, error=str(exc) or exc.__class__.__name__)
        return DeliveryResult(success=True, message_id=message_id)

    def _transmit(self, message: OutboundEmail) -> str:
        raise NotImplementedError


class ConsoleNotifier(Notifier):
    """Development transport: logs instead of delivering."""

    def __init__(self, sender: str = "noreply@cubepos.local"):
        self.sender = sender

    def _transmit(self, message: OutboundEmail) -> str:
        message_id = make_msgid(domain=self.sender.partition("@")[2] or None)
        logger.info("EMAIL %s -> %s: %s", message_id, message.to, message.subject)
        return message_id


class SmtpNotifier(Notifier):
    """SMTP transport; one connection per message, bounded by `timeout`."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        username: str | None,
        password: str | None,
        sender: str,
        use_ssl: bool = False,
        timeout: float = 10.0,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.username = username
        self.password = password
        self.sender = sender
        self.use_ssl = use_ssl
        self.timeout = timeout

    def init(self) -> None:
        if not self.smtp_host:
            raise ValueError("SMTP_HOST is required for the smtp email service")

    @contextmanager
    def _connection(self):
        """Context-managed SMTP connection."""
        server = None
        try:
            if self.use_ssl:
                server = smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, timeout=self.timeout)
            else:
                server = smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout)
                server.starttls()
            if self.username:
                server.login(self.username, self.password or "")
            yield server
        finally:
            if server:
                try:
                    server.quit()
                except (smtplib.SMTPException, OSError) as e:
                    logger.warning("Error closing SMTP connection: %s", e)

    def _build_message(self, message: OutboundEmail, message_id: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = message.to
        msg["Subject"] = message.subject
        msg["Message-ID"] = message_id

        msg.attach(MIMEText(message.text_body or "", "plain"))
        if message.html_body:
            msg.attach(MIMEText(message.html_body, "html"))
        return msg

    def _transmit(self, message: OutboundEmail) -> str:
        message_id = make_msgid(domain=self.sender.partition("@")[2] or None)
        msg = self._build_message(message, message_id)
        try:
            with self._connection() as server:
                server.sendmail(self.sender, [message.to], msg.as_string())
        except smtplib.SMTPAuthenticationError as exc:
            raise DeliveryError("SMTP authentication failed") from exc
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryError(f"SMTP delivery failed: {exc}") from exc
        logger.info("Email %s sent to %s", message_id, message.to)
        return message_id


def build_notifier(config) -> Notifier:
    service = (config.get("EMAIL_SERVICE") or "console").lower()
    if service == "console":
        return ConsoleNotifier(sender=config.get("EMAIL_SENDER") or "noreply@cubepos.local")
    if service == "smtp":
        return SmtpNotifier(
            smtp_host=config.get("SMTP_HOST"),
            smtp_port=int(config.get("SMTP_PORT") or 587),
            username=config.get("SMTP_USERNAME"),
            password=config.get("SMTP_PASSWORD"),
            sender=config.get("EMAIL_SENDER"),
            use_ssl=bool(config.get("SMTP_USE_SSL")),
            timeout=float(config.get("SMTP_TIMEOUT_SECONDS") or 10),
        )
    raise ValueError(f"Unsupported email service: {service}. Supported services: console, smtp")
