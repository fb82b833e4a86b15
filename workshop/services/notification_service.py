import re
import logging
from typing import Optional, Dict, Any
from dataclasses import dataclass

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

TEMPLATE_FIELD = re.compile(r"\{\{(\w+)\}\}")


@dataclass
class WhatsAppConfig:
    api_url: str
    api_key: str
    timeout: int = 10
    max_retries: int = 3


@dataclass
class WhatsAppMessage:
    to: str
    message: str
    type: str = "text"
    document_url: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "to": self.to,
            "message": self.message,
            "type": self.type,
        }
        if self.document_url:
            payload["document_url"] = self.document_url
        return payload


class WhatsAppService:

    SEND_PATH = "/send"

    def __init__(self, config: WhatsAppConfig):
        self.config = config
        self._url = f"{config.api_url.rstrip('/')}{self.SEND_PATH}"

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    def send_message(self, to: str, message: str, **kwargs) -> tuple[bool, Optional[str]]:
        msg = WhatsAppMessage(to=to, message=message, **kwargs)

        if not self.is_configured:
            logger.info("WhatsApp API not configured. Simulated message to %s: %s", msg.to, msg.message)
            return True, None

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }

        error_msg = None
        for attempt in range(1, self.config.max_retries + 1):
            try:
                response = requests.post(
                    self._url,
                    json=msg.to_payload(),
                    headers=headers,
                    timeout=self.config.timeout
                )

                if response.ok:
                    logger.info("WhatsApp message sent to %s", msg.to)
                    return True, None

                error_msg = f"WhatsApp API error: {response.status_code} - {response.text}"
                logger.warning(f"Attempt {attempt}/{self.config.max_retries}: {error_msg}")

            except requests.exceptions.ConnectionError:
                error_msg = "No internet connection"
                logger.warning(f"Attempt {attempt}/{self.config.max_retries}: {error_msg}")

            except requests.exceptions.Timeout:
                error_msg = "Request timed out"
                logger.warning(f"Attempt {attempt}/{self.config.max_retries}: {error_msg}")

            except requests.exceptions.RequestException as e:
                error_msg = f"Request failed: {str(e)}"
                logger.warning(f"Attempt {attempt}/{self.config.max_retries}: {error_msg}")

        logger.error(f"Failed to send WhatsApp message to {msg.to} after {self.config.max_retries} attempts")
        return False, error_msg


def format_message_template(template: str, data: Dict[str, Any]) -> str:
    """Replace {{key}} placeholders; unknown or empty values render as ''."""
    def replace(match):
        value = data.get(match.group(1))
        return str(value) if value else ""

    return TEMPLATE_FIELD.sub(replace, template)


def get_whatsapp_service(config: Optional[WhatsAppConfig] = None) -> WhatsAppService:
    return WhatsAppService(config or WhatsAppConfig(
        api_url=settings.WHATSAPP_API_URL,
        api_key=settings.WHATSAPP_API_KEY,
        timeout=settings.WHATSAPP_TIMEOUT,
        max_retries=settings.WHATSAPP_MAX_RETRIES,
    ))
