"""InforUMobile SMS delivery channel (XML over HTTP)."""

import logging
import xml.etree.ElementTree as ET

import httpx

from reminders.config import InforuSettings, get_inforu_settings
from reminders.enums import SendError
from reminders.notifications.channels.base import (
    NotificationChannel,
    SendResult,
    mask_address,
)

logger = logging.getLogger(__name__)

SEND_PATH = "SendMessageXml.ashx"

# Numeric status codes returned by the gateway (1 == accepted)
GATEWAY_ERRORS = {
    -2: SendError.auth_failed,
    -6: SendError.invalid_address,
    -9: SendError.empty_message,
    -13: SendError.quota_exceeded,
}


def build_payload(settings: InforuSettings, phone_number: str, message: str) -> str:
    """Build the single-line XML document the gateway expects."""
    root = ET.Element("Inforu")

    user = ET.SubElement(root, "User")
    ET.SubElement(user, "Username").text = settings.username
    ET.SubElement(user, "Password").text = settings.password

    content = ET.SubElement(root, "Content", Type="sms")
    ET.SubElement(content, "Message").text = message

    recipients = ET.SubElement(root, "Recipients")
    ET.SubElement(recipients, "PhoneNumber").text = phone_number

    gateway_settings = ET.SubElement(root, "Settings")
    ET.SubElement(gateway_settings, "Sender").text = settings.sender_name

    return ET.tostring(root, encoding="unicode")


def _result_for_code(code: int) -> SendResult:
    if code == 1:
        return SendResult.ok()
    logger.warning(f"InforUMobile returned status {code}")
    return SendResult.failed(GATEWAY_ERRORS.get(code, SendError.unexpected))


def parse_response(body: str) -> SendResult:
    """
    Interpret a gateway response body.

    The gateway answers with either a bare status code ("1", "-2", ...)
    or an XML document carrying a <Status> element.
    """
    text = body.strip()
    try:
        return _result_for_code(int(text))
    except ValueError:
        pass

    try:
        root = ET.fromstring(text)
    except ET.ParseError:
        logger.error(f"Failed to parse InforUMobile response: {text[:200]}")
        return SendResult.failed(SendError.unexpected)

    status = (root.findtext("Status") or "").strip()
    if status.lower() == "ok":
        return SendResult.ok()
    try:
        return _result_for_code(int(status))
    except ValueError:
        logger.warning(f"InforUMobile unexpected response: {text[:200]}")
        return SendResult.failed(SendError.unexpected)


class InforuSmsChannel(NotificationChannel):
    """Sends SMS through the InforUMobile HTTP API."""

    def __init__(self, settings: InforuSettings):
        self._settings = settings

    @classmethod
    def from_env(cls) -> "InforuSmsChannel":
        """
        Build the channel from environment settings.

        Raises:
            ConfigurationError: If gateway credentials are not configured
        """
        return cls(get_inforu_settings())

    async def send(self, address: str, message: str) -> SendResult:
        """
        Send an SMS.

        Args:
            address: Recipient mobile number
            message: Rendered message text

        Returns:
            SendResult; never raises for transport or gateway failures
        """
        masked = mask_address(address)

        if not message or not message.strip():
            logger.warning(f"Refusing to send empty SMS to {masked}")
            return SendResult.failed(SendError.empty_message)

        payload = build_payload(self._settings, address, message)

        try:
            async with httpx.AsyncClient(
                base_url=self._settings.base_url,
                timeout=self._settings.timeout_seconds,
            ) as client:
                response = await client.post(SEND_PATH, params={"InforuXML": payload})
        except httpx.TimeoutException:
            logger.error(f"InforUMobile request timed out for phone {masked}")
            return SendResult.failed(SendError.timeout)
        except httpx.RequestError as e:
            logger.error(f"InforUMobile network error for phone {masked}: {type(e).__name__}")
            return SendResult.failed(SendError.network_error)
        except Exception as e:
            # Exception text can embed the request URL, which carries credentials
            logger.error(f"InforUMobile unexpected error for phone {masked}: {type(e).__name__}")
            return SendResult.failed(SendError.unexpected)

        if not response.is_success:
            logger.error(
                f"InforUMobile HTTP error {response.status_code}: {response.text[:200]}"
            )
            return SendResult.failed(SendError.unexpected)

        return parse_response(response.text)
