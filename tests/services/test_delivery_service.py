# tests/services/test_delivery_service.py
"""
Unit tests for email / WhatsApp delivery and coaching booking.
"""
from urllib.parse import parse_qs, urlparse

import pytest

from cool_ikigai.core.exceptions import ValidationError
from cool_ikigai.services.delivery_service import DeliveryService


@pytest.fixture
def delivery(prompt_manager):
    return DeliveryService(prompt_manager=prompt_manager, coaching_base_url="https://booking.example.com/ikigai")


@pytest.fixture
def ikigai_data():
    return {
        "passions": "la musique",
        "talents": "expliquer simplement",
        "worldNeeds": "plus de solidarité",
        "monetization": "donner des cours",
        "summary": "Votre Ikigai est la transmission."
    }


@pytest.mark.unit
class TestEmail:

    async def test_send(self, delivery, ikigai_data):
        result = await delivery.send_by_email("camille@example.com", ikigai_data)

        assert result == {"success": True, "message": "Email sent successfully"}

    async def test_missing_email(self, delivery, ikigai_data):
        with pytest.raises(ValidationError) as exc_info:
            await delivery.send_by_email("", ikigai_data)

        assert exc_info.value.message == "Missing required fields"

    async def test_missing_domain(self, delivery, ikigai_data):
        del ikigai_data["worldNeeds"]

        with pytest.raises(ValidationError) as exc_info:
            await delivery.send_by_email("camille@example.com", ikigai_data)

        assert exc_info.value.field == "worldNeeds"

    async def test_invalid_email(self, delivery, ikigai_data):
        with pytest.raises(ValidationError) as exc_info:
            await delivery.send_by_email("camille.example.com", ikigai_data)

        assert exc_info.value.message == "Invalid email format"


@pytest.mark.unit
class TestWhatsApp:

    async def test_send(self, delivery, ikigai_data):
        result = await delivery.send_by_whatsapp("+33612345678", ikigai_data)

        assert result["success"] is True
        assert result["message"] == "WhatsApp message sent successfully"

    async def test_missing_data(self, delivery):
        with pytest.raises(ValidationError):
            await delivery.send_by_whatsapp("+33612345678", None)

    async def test_invalid_number(self, delivery, ikigai_data):
        with pytest.raises(ValidationError) as exc_info:
            await delivery.send_by_whatsapp("appelle-moi", ikigai_data)

        assert exc_info.value.field == "phoneNumber"

    def test_render_whatsapp(self, delivery, ikigai_data):
        text = delivery.render_whatsapp(ikigai_data)

        assert "VOS PASSIONS:\nla musique" in text
        assert "Votre Ikigai est la transmission." in text


@pytest.mark.unit
class TestCoaching:

    async def test_schedule(self, delivery):
        result = await delivery.schedule_coaching("Camille Martin", "camille@example.com")

        assert result["success"] is True
        assert result["message"] == "Coaching call scheduled successfully"

        url = urlparse(result["schedulingUrl"])
        assert f"{url.scheme}://{url.netloc}{url.path}" == "https://booking.example.com/ikigai"
        assert parse_qs(url.query) == {"name": ["Camille Martin"], "email": ["camille@example.com"]}

    async def test_name_required(self, delivery):
        with pytest.raises(ValidationError) as exc_info:
            await delivery.schedule_coaching("", "camille@example.com")

        assert exc_info.value.message == "Name and email are required"
        assert exc_info.value.field == "name"

    async def test_invalid_email(self, delivery):
        with pytest.raises(ValidationError) as exc_info:
            await delivery.schedule_coaching("Camille", "camille")

        assert exc_info.value.message == "Invalid email format"

    async def test_invalid_phone_number(self, delivery):
        with pytest.raises(ValidationError) as exc_info:
            await delivery.schedule_coaching("Camille", "camille@example.com", "appelez-moi")

        assert exc_info.value.message == "Invalid phone number format"
        assert exc_info.value.field == "phoneNumber"

    async def test_phone_number_accepted(self, delivery):
        result = await delivery.schedule_coaching("Camille", "camille@example.com", "+33 6 12 34 56 78")

        assert result["success"] is True
