"""Delivery channels for reminder messages."""

from .base import NotificationChannel, SendResult, mask_address
from .inforu import InforuSmsChannel

__all__ = [
    "NotificationChannel",
    "SendResult",
    "mask_address",
    "InforuSmsChannel",
]
