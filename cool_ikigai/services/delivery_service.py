# cool_ikigai/services/delivery_service.py
"""
Delivery of Ikigai results: email, WhatsApp and coaching booking.

The outbound integrations are logged mocks. Input is validated for real,
so callers get the same errors a live integration would raise.
"""
import asyncio
from typing import Any, Dict, Optional
from urllib.parse import urlencode
import logging

from cool_ikigai.core.config import settings
from cool_ikigai.core.exceptions import ValidationError
from cool_ikigai.core.prompt_manager import PromptManager, PromptType, get_prompt_manager
from cool_ikigai.services.validation_service import is_email, is_phone_number

logger = logging.getLogger(__name__)

REQUIRED_IKIGAI_FIELDS = ("passions", "talents", "worldNeeds", "monetization")


class DeliveryService:

    def __init__(
        self,
        prompt_manager: Optional[PromptManager] = None,
        coaching_base_url: Optional[str] = None,
        send_delay: float = 0.0
    ):
        self.prompt_manager = prompt_manager or get_prompt_manager()
        self.coaching_base_url = coaching_base_url or settings.COACHING_BASE_URL
        self.send_delay = send_delay

    @staticmethod
    def _require_ikigai_data(ikigai_data: Optional[Dict[str, Any]]):
        if not ikigai_data:
            raise ValidationError("Missing required fields", field="ikigaiData")
        missing = [field for field in REQUIRED_IKIGAI_FIELDS if not ikigai_data.get(field)]
        if missing:
            raise ValidationError("Missing required fields", field=", ".join(missing))

    def _template_vars(self, ikigai_data: Dict[str, Any]) -> Dict[str, str]:
        return {
            "passions": ikigai_data.get("passions", ""),
            "talents": ikigai_data.get("talents", ""),
            "world_needs": ikigai_data.get("worldNeeds", ""),
            "monetization": ikigai_data.get("monetization", ""),
            "summary": ikigai_data.get("summary", ""),
        }

    async def send_by_email(self, email: str, ikigai_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Send the Ikigai summary by email.

        Raises:
            ValidationError: Missing fields or malformed address
        """
        if not email:
            raise ValidationError("Missing required fields", field="email")
        self._require_ikigai_data(ikigai_data)
        if not is_email(email):
            raise ValidationError("Invalid email format", field="email", value=email)

        subject = self.prompt_manager.get_prompt(PromptType.SUMMARY_EMAIL_SUBJECT)
        body = self.prompt_manager.get_prompt(PromptType.SUMMARY_EMAIL_BODY, **self._template_vars(ikigai_data))

        logger.info(f"Sending Ikigai results to email: {email}")
        logger.debug(f"Email subject: {subject} ({len(body)} characters)")
        if self.send_delay:
            await asyncio.sleep(self.send_delay)

        return {"success": True, "message": "Email sent successfully"}

    async def send_by_whatsapp(self, phone_number: str, ikigai_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Send the Ikigai summary as a WhatsApp message.

        Raises:
            ValidationError: Missing fields or malformed number
        """
        if not phone_number:
            raise ValidationError("Missing required fields", field="phoneNumber")
        self._require_ikigai_data(ikigai_data)
        if not is_phone_number(phone_number):
            raise ValidationError("Invalid phone number format", field="phoneNumber", value=phone_number)

        text = self.render_whatsapp(ikigai_data)

        logger.info(f"Sending Ikigai results to WhatsApp: {phone_number}")
        logger.debug(f"WhatsApp summary: {text}")
        if self.send_delay:
            await asyncio.sleep(self.send_delay)

        return {"success": True, "message": "WhatsApp message sent successfully"}

    def render_whatsapp(self, ikigai_data: Dict[str, Any]) -> str:
        return self.prompt_manager.get_prompt(PromptType.SUMMARY_WHATSAPP, **self._template_vars(ikigai_data))

    async def schedule_coaching(
        self,
        name: str,
        email: str,
        phone_number: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Book a coaching call.

        Returns:
            {success, message, schedulingUrl}

        Raises:
            ValidationError: Missing name/email, malformed email or phone number
        """
        if not name or not email:
            raise ValidationError("Name and email are required", field="name" if not name else "email")
        if not is_email(email):
            raise ValidationError("Invalid email format", field="email", value=email)
        if phone_number and not is_phone_number(phone_number):
            raise ValidationError("Invalid phone number format", field="phoneNumber", value=phone_number)

        params = {"name": name, "email": email}
        scheduling_url = f"{self.coaching_base_url}?{urlencode(params)}"

        logger.info(f"Coaching call requested by {name} <{email}>" + (f", phone {phone_number}" if phone_number else ""))

        return {
            "success": True,
            "message": "Coaching call scheduled successfully",
            "schedulingUrl": scheduling_url,
        }
