from genfuze.notify.mailer import EmailNotConfiguredError, EmailService, get_email_service, set_email_service

__all__ = ["EmailNotConfiguredError", "EmailService", "get_email_service", "set_email_service"]
