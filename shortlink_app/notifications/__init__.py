"""
Owner notifications: publishing (Notifier) and delivery (MailWorker + mailers).
"""

from .notifier import Notifier
from .mailers import Mailer, SmtpMailer, LoggingMailer, MailBackend, create_mailer

__all__ = [
    "Notifier",
    "Mailer",
    "SmtpMailer",
    "LoggingMailer",
    "MailBackend",
    "create_mailer",
]
