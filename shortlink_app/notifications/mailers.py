"""
Mail delivery strategies.
"""

import logging
import smtplib
from abc import ABC, abstractmethod
from email.header import Header
from email.mime.text import MIMEText
from enum import Enum

from shortlink_app.config import settings


logger = logging.getLogger(__name__)


class Mailer(ABC):
    """Abstract base class for mail delivery"""
    
    @abstractmethod
    def send(self, recipient: str, subject: str, body: str) -> None:
        """
        Deliver one plain-text message.
        
        Raises:
            Exception: on delivery failure (the worker leaves the message pending)
        """
        pass


class SmtpMailer(Mailer):
    """Delivers mail through an SMTP relay, one connection per message"""
    
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout
    
    def build_message(self, recipient: str, subject: str, body: str) -> MIMEText:
        msg = MIMEText(body, "plain", "utf-8")
        msg["From"] = self.sender
        msg["To"] = recipient
        msg["Subject"] = Header(subject, "utf-8")
        return msg
    
    def send(self, recipient: str, subject: str, body: str) -> None:
        msg = self.build_message(recipient, subject, body)
        
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.sendmail(self.sender, [recipient], msg.as_string())
        
        logger.info("Mail sent to %s: %s", recipient, subject)


class LoggingMailer(Mailer):
    """Writes messages to the log instead of sending them (development)"""
    
    def send(self, recipient: str, subject: str, body: str) -> None:
        logger.info("Mail to %s | %s\n%s", recipient, subject, body)


class MailBackend(Enum):
    """Available mail backends"""
    SMTP = "smtp"
    LOG = "log"


def create_mailer(backend: MailBackend = None) -> Mailer:
    """Build the mailer configured in settings"""
    if backend is None:
        backend = MailBackend(settings.mail_backend)
    
    if backend == MailBackend.SMTP:
        return SmtpMailer(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.mail_sender,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            timeout=settings.smtp_timeout_seconds,
        )
    if backend == MailBackend.LOG:
        return LoggingMailer()
    
    raise ValueError(f"Unknown mail backend: {backend}")
