"""Notification channel interface shared by all delivery transports."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from reminders.enums import SendError


@dataclass(frozen=True)
class SendResult:
    """Outcome of sending one message to one address."""

    success: bool
    error: SendError | None = None

    @classmethod
    def ok(cls) -> "SendResult":
        return cls(success=True)

    @classmethod
    def failed(cls, error: SendError) -> "SendResult":
        return cls(success=False, error=error)


class NotificationChannel(ABC):
    """Abstract interface for delivering a rendered message to an address."""

    @abstractmethod
    async def send(self, address: str, message: str) -> SendResult:
        """
        Send one message.

        Implementations map every transport failure to a SendError and
        return it instead of raising.
        """
        pass


def mask_address(address: str | None) -> str:
    """
    Redact an address for logging, keeping only the last 4 characters.

    "0501234567" -> "***4567"
    """
    if not address or len(address) < 4:
        return "***"
    return "***" + address[-4:]
