from .email import EmailNotifier, DeliveryResult
from .templates import EmailTemplate, password_reset_template, welcome_template

__all__ = [
    "EmailNotifier",
    "DeliveryResult",
    "EmailTemplate",
    "password_reset_template",
    "welcome_template",
]
