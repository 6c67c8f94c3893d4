# cool_ikigai/services/validation_service.py
"""
Input validation service for Cool Ikigai.

Centralizes the business rules that decide how a user answer is treated:
yes/no/uncertain classification, the "don't know" / too short / low
confidence gates for domain answers, and contact format checks.
The flow engine turns these results into events; handlers format replies.
"""

from typing import Optional, Dict, Any
from dataclasses import dataclass
from enum import Enum
import logging
import re

from cool_ikigai.models.flow_models import Domain, TextAnalysis
from cool_ikigai.prompts import common_prompts
from cool_ikigai.services.text_analyzer import analyze

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9\s\-\(\)]{8,20}$")


class AnswerClass(str, Enum):
    AFFIRMATIVE = "affirmative"
    NEGATIVE = "negative"
    UNCERTAIN = "uncertain"
    UNCLASSIFIED = "unclassified"


@dataclass
class ValidationResult:
    """Result of input validation"""
    valid: bool
    error_type: Optional[str] = None
    message: Optional[str] = None
    analysis: Optional[TextAnalysis] = None
    details: Optional[Dict[str, Any]] = None


def is_email(contact: str) -> bool:
    return bool(EMAIL_PATTERN.match(contact.strip()))


def is_phone_number(contact: str) -> bool:
    return bool(PHONE_PATTERN.match(contact.strip()))


class ValidationService:
    """
    Centralized validation service for all user inputs.

    Validation strategy for domain answers, in order:
    1. Explicit "don't know" (passions, talents)
    2. Minimum length (passions, talents)
    3. Analyzer confidence (all domains)
    """

    MIN_LENGTH: Dict[Domain, int] = {
        Domain.PASSIONS: 10,
        Domain.TALENTS: 15,
    }
    DONT_KNOW_DOMAINS = (Domain.PASSIONS, Domain.TALENTS)
    MIN_CONFIDENCE = 0.2

    def __init__(self):
        self.logger = logger
        self._affirmative = {self._normalize(p) for p in common_prompts.AFFIRMATIVE_PATTERNS}
        self._affirmative.add(self._normalize(common_prompts.OPTION_YES))
        self._negative = {self._normalize(p) for p in common_prompts.NEGATIVE_PATTERNS}
        self._negative.add(self._normalize(common_prompts.OPTION_NO))
        self._uncertain = {self._normalize(p) for p in common_prompts.UNCERTAIN_PATTERNS}
        self._uncertain.add(self._normalize(common_prompts.OPTION_NOT_SURE))

    @staticmethod
    def _normalize(text: str) -> str:
        return text.strip().lower().replace("’", "'").rstrip(".!").strip()

    def classify_answer(self, user_input: str) -> AnswerClass:
        """
        Classify a short answer.

        Checks run affirmative, then negative, then uncertain. The uncertain
        check is a substring match, so the order decides overlapping cases.
        """
        normalized = self._normalize(user_input)

        if normalized in self._affirmative:
            return AnswerClass.AFFIRMATIVE
        if normalized in self._negative:
            return AnswerClass.NEGATIVE
        if normalized in self._uncertain or any(
            fragment in normalized for fragment in common_prompts.UNCERTAIN_FRAGMENTS
        ):
            return AnswerClass.UNCERTAIN
        return AnswerClass.UNCLASSIFIED

    def is_dont_know(self, user_input: str) -> bool:
        normalized = self._normalize(user_input)
        return any(pattern in normalized for pattern in common_prompts.DONT_KNOW_PATTERNS)

    def is_restart_command(self, user_input: str) -> bool:
        return self._normalize(user_input) in common_prompts.RESTART_COMMANDS

    def validate_domain_answer(self, user_input: str, domain: Domain) -> ValidationResult:
        """
        Validate a free-text answer for one Ikigai domain.

        Args:
            user_input: The raw answer
            domain: Domain being asked

        Returns:
            ValidationResult; on success the analysis is attached
        """
        analysis = analyze(user_input, domain)

        if domain in self.DONT_KNOW_DOMAINS and self.is_dont_know(user_input):
            return ValidationResult(
                valid=False,
                error_type="dont_know",
                message=f"User does not know their {domain.value}",
                analysis=analysis,
            )

        min_length = self.MIN_LENGTH.get(domain)
        if min_length is not None and len(user_input.strip()) < min_length:
            return ValidationResult(
                valid=False,
                error_type="too_short",
                message=f"Answer shorter than {min_length} characters",
                analysis=analysis,
                details={"min_length": min_length, "actual_length": len(user_input.strip())}
            )

        if analysis.confidence < self.MIN_CONFIDENCE:
            return ValidationResult(
                valid=False,
                error_type="low_confidence",
                message=f"Confidence {analysis.confidence:.2f} below {self.MIN_CONFIDENCE}",
                analysis=analysis,
                details={"confidence": analysis.confidence}
            )

        return ValidationResult(valid=True, analysis=analysis)

    def validate_contact(self, contact: str) -> ValidationResult:
        """Tell email from WhatsApp number"""
        contact = contact.strip()
        if is_email(contact):
            return ValidationResult(valid=True, details={"channel": "email"})
        if is_phone_number(contact):
            return ValidationResult(valid=True, details={"channel": "whatsapp"})
        return ValidationResult(
            valid=False,
            error_type="invalid_contact",
            message="Contact is neither an email address nor a phone number",
            details={"received": contact[:50]}
        )
