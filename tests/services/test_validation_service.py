# tests/services/test_validation_service.py
"""
Unit tests for the validation service.
"""
import pytest

from cool_ikigai.models.flow_models import Domain
from cool_ikigai.services.validation_service import (
    AnswerClass,
    ValidationService,
    is_email,
    is_phone_number
)


@pytest.fixture
def validator():
    return ValidationService()


@pytest.mark.unit
class TestAnswerClassification:

    @pytest.mark.parametrize("text", ["oui", "Oui", " OUI ", "yes", "Oui."])
    def test_affirmative(self, validator, text):
        assert validator.classify_answer(text) == AnswerClass.AFFIRMATIVE

    @pytest.mark.parametrize("text", ["non", "Non!", "no"])
    def test_negative(self, validator, text):
        assert validator.classify_answer(text) == AnswerClass.NEGATIVE

    @pytest.mark.parametrize("text", ["Pas sûr", "not sure", "je ne suis pas sûr"])
    def test_uncertain(self, validator, text):
        assert validator.classify_answer(text) == AnswerClass.UNCERTAIN

    @pytest.mark.parametrize("text", ["peut-être", "ouais bof", "", "Bonjour"])
    def test_unclassified(self, validator, text):
        assert validator.classify_answer(text) == AnswerClass.UNCLASSIFIED

    def test_affirmative_checked_before_uncertain(self, validator):
        # "sure" would match the uncertain fragment
        validator._affirmative.add("sure")

        assert validator.classify_answer("sure") == AnswerClass.AFFIRMATIVE


@pytest.mark.unit
class TestCommands:

    @pytest.mark.parametrize("text", ["recommencer", "Recommencer", "restart", "on recommence"])
    def test_restart(self, validator, text):
        assert validator.is_restart_command(text)

    def test_restart_must_be_whole_answer(self, validator):
        assert not validator.is_restart_command("je veux recommencer ma vie")

    @pytest.mark.parametrize("text", ["Je ne sais pas", "je sais pas trop", "aucune idée", "I don't know"])
    def test_dont_know(self, validator, text):
        assert validator.is_dont_know(text)

    def test_curly_apostrophe(self, validator):
        assert validator.is_dont_know("I don’t know")


@pytest.mark.unit
class TestDomainAnswers:

    def test_dont_know_for_passions(self, validator):
        result = validator.validate_domain_answer("Je ne sais pas du tout", Domain.PASSIONS)

        assert not result.valid
        assert result.error_type == "dont_know"

    def test_dont_know_not_checked_for_world_needs(self, validator):
        result = validator.validate_domain_answer("je ne sais pas", Domain.WORLD_NEEDS)

        assert result.error_type != "dont_know"

    def test_too_short_passions(self, validator):
        result = validator.validate_domain_answer("Le sport", Domain.PASSIONS)

        assert not result.valid
        assert result.error_type == "too_short"
        assert result.details["min_length"] == 10

    def test_talents_need_fifteen_characters(self, validator):
        result = validator.validate_domain_answer("Le dessin fin", Domain.TALENTS)

        assert result.error_type == "too_short"
        assert result.details == {"min_length": 15, "actual_length": 13}

    def test_low_confidence(self, validator):
        result = validator.validate_domain_answer("ok", Domain.MONETIZATION)

        assert not result.valid
        assert result.error_type == "low_confidence"
        assert result.details["confidence"] < 0.2

    def test_accepted_answer_carries_analysis(self, validator):
        result = validator.validate_domain_answer("J'adore la musique et la peinture", Domain.PASSIONS)

        assert result.valid
        assert result.analysis.topics == ["la musique et la peinture"]


@pytest.mark.unit
class TestContacts:

    def test_email(self, validator):
        result = validator.validate_contact("camille@example.com")

        assert result.valid
        assert result.details["channel"] == "email"

    def test_phone(self, validator):
        result = validator.validate_contact("+33 6 12 34 56 78")

        assert result.valid
        assert result.details["channel"] == "whatsapp"

    def test_invalid(self, validator):
        result = validator.validate_contact("pas de contact")

        assert not result.valid
        assert result.error_type == "invalid_contact"

    @pytest.mark.parametrize("value,expected", [
        ("a@b.co", True),
        ("a@b", False),
        ("a b@c.fr", False),
    ])
    def test_is_email(self, value, expected):
        assert is_email(value) is expected

    @pytest.mark.parametrize("value,expected", [
        ("0612345678", True),
        ("(01) 23-45-67-89", True),
        ("1234", False),
        ("06 12 ab 34", False),
    ])
    def test_is_phone_number(self, value, expected):
        assert is_phone_number(value) is expected
