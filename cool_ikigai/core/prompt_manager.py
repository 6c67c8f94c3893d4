# cool_ikigai/core/prompt_manager.py
"""
Centralized prompt management for Cool Ikigai.

Every sentence Bob says, every summary template and every option label lives
in the prompt modules. This manager registers them under stable keys and
handles variable substitution.
"""
from typing import Dict, Any, Optional, List
from enum import Enum
import logging
import re
from dataclasses import dataclass, field
from cool_ikigai.core.exceptions import PromptError

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{(\w+)\}")


class PromptCategory(str, Enum):
    BOB = "bob"
    SUMMARY = "summary"
    COMMON = "common"


class PromptType(str, Enum):
    """Registry keys of every prompt the application uses"""

    # Introduction & readiness
    BOB_INTRODUCTION = "bob.introduction"
    BOB_READY_QUESTION = "bob.ready.question"
    BOB_READY_CLARIFY = "bob.ready.clarify"
    BOB_NOT_READY_GOODBYE = "bob.not.ready.goodbye"
    BOB_ASK_YES_NO = "bob.ask.yes.no"
    BOB_RESTART = "bob.restart"
    BOB_REPHRASE = "bob.rephrase"

    # Domain questions
    BOB_PASSIONS_QUESTION = "bob.passions.question"
    BOB_PASSIONS_UNKNOWN = "bob.passions.unknown"
    BOB_PASSIONS_ELABORATE = "bob.passions.elaborate"
    BOB_PASSIONS_ENCOURAGE = "bob.passions.encourage"
    BOB_PASSIONS_VALIDATE = "bob.passions.validate"
    BOB_TALENTS_QUESTION = "bob.talents.question"
    BOB_TALENTS_UNKNOWN = "bob.talents.unknown"
    BOB_TALENTS_ELABORATE = "bob.talents.elaborate"
    BOB_TALENTS_ENCOURAGE = "bob.talents.encourage"
    BOB_TALENTS_VALIDATE = "bob.talents.validate"
    BOB_TALENTS_CONNECTION = "bob.talents.connection"
    BOB_WORLD_NEEDS_QUESTION = "bob.world.needs.question"
    BOB_WORLD_NEEDS_ENCOURAGE = "bob.world.needs.encourage"
    BOB_WORLD_NEEDS_VALIDATE = "bob.world.needs.validate"
    BOB_MONETIZATION_QUESTION = "bob.monetization.question"
    BOB_MONETIZATION_ENCOURAGE = "bob.monetization.encourage"
    BOB_MONETIZATION_CAREER_SUGGESTION = "bob.monetization.career.suggestion"
    BOB_MONETIZATION_VALIDATE = "bob.monetization.validate"

    # Summary, delivery, coaching
    BOB_SUMMARY_INTRO = "bob.summary.intro"
    BOB_DELIVERY_QUESTION = "bob.delivery.question"
    BOB_DELIVERY_ACCEPTED = "bob.delivery.accepted"
    BOB_DELIVERY_DECLINED = "bob.delivery.declined"
    BOB_CONTACT_QUESTION = "bob.contact.question"
    BOB_CONTACT_THANKS = "bob.contact.thanks"
    BOB_CONTACT_INVALID = "bob.contact.invalid"
    BOB_COACHING_QUESTION = "bob.coaching.question"
    BOB_COACHING_SCHEDULE = "bob.coaching.schedule"
    BOB_COACHING_CONFIRMATION = "bob.coaching.confirmation"
    BOB_CONCLUSION = "bob.conclusion"

    # Free chat & fallbacks
    BOB_CHAT_SYSTEM = "bob.chat.system"
    BOB_CHAT_FALLBACK = "bob.chat.fallback"
    BOB_DOCUMENT_ERROR = "bob.document.error"
    BOB_DOCUMENT_NOT_READY = "bob.document.not.ready"
    BOB_DELIVERY_FAILED = "bob.delivery.failed"
    BOB_COACHING_FAILED = "bob.coaching.failed"

    # Summary templates
    SUMMARY_NARRATIVE_DOMAINS = "summary.narrative.domains"
    SUMMARY_NARRATIVE_THEMES = "summary.narrative.themes"
    SUMMARY_NARRATIVE_CAREERS = "summary.narrative.careers"
    SUMMARY_NARRATIVE_CLOSING = "summary.narrative.closing"
    SUMMARY_DOCUMENT_TITLE = "summary.document.title"
    SUMMARY_DOCUMENT = "summary.document"
    SUMMARY_WHATSAPP = "summary.whatsapp"
    SUMMARY_EMAIL_SUBJECT = "summary.email.subject"
    SUMMARY_EMAIL_BODY = "summary.email.body"

    # Option labels
    OPTION_YES = "common.option.yes"
    OPTION_NO = "common.option.no"
    OPTION_NOT_SURE = "common.option.not.sure"
    OPTION_START = "common.option.start"
    OPTION_CONTINUE = "common.option.continue"


@dataclass
class Prompt:
    """A registered template and the {placeholders} it needs"""
    key: str
    template: str
    category: PromptCategory
    source: str = ""
    variables: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.variables:
            self.variables = sorted(set(PLACEHOLDER.findall(self.template)))

    def render(self, **values) -> str:
        missing = sorted(set(self.variables) - values.keys())
        if missing:
            raise PromptError(
                f"Prompt {self.key} needs {', '.join(missing)}",
                prompt_type=self.key,
                details={"missing_variables": missing}
            )
        return self.template.format(**values) if self.variables else self.template


class PromptManager:
    """
    Registry of Bob's lines, the summary templates and the option labels.

    Every uppercase string constant of the prompt modules is registered on
    first use; BOB_PASSIONS_QUESTION in bob_prompts becomes
    "bob.passions.question".
    """

    SOURCES = (
        ("bob_prompts", PromptCategory.BOB),
        ("summary_prompts", PromptCategory.SUMMARY),
        ("common_prompts", PromptCategory.COMMON),
    )

    def __init__(self):
        self.prompts: Dict[str, Prompt] = {}
        self._loaded = False

    def load_prompts(self):
        if self._loaded:
            return

        import cool_ikigai.prompts as package

        for module_name, category in self.SOURCES:
            module = getattr(package, module_name)
            for name, value in vars(module).items():
                if name.isupper() and isinstance(value, str):
                    key = f"{category.value}.{name.lower().replace('_', '.')}"
                    self.prompts[key] = Prompt(
                        key=key,
                        template=value,
                        category=category,
                        source=f"{module.__name__}.{name}"
                    )

        self._loaded = True
        logger.info(f"{len(self.prompts)} prompts registered")

    def _lookup(self, key: str) -> Prompt:
        self.load_prompts()
        try:
            return self.prompts[key]
        except KeyError:
            raise PromptError(f"Unknown prompt: {key}", prompt_type=key) from None

    def get(self, key: str, **values) -> str:
        """
        Render the prompt registered under key.

        Raises:
            PromptError: Unknown key, or a placeholder without a value
        """
        return self._lookup(key).render(**values)

    def get_prompt(self, prompt_type, **values) -> str:
        """Same as get(), taking a PromptType"""
        return self.get(getattr(prompt_type, 'value', prompt_type), **values)

    def list_prompts(self, category: Optional[PromptCategory] = None) -> List[str]:
        self.load_prompts()
        return [key for key, prompt in self.prompts.items() if category is None or prompt.category == category]

    def get_prompt_info(self, key: str) -> Dict[str, Any]:
        prompt = self._lookup(key)
        return {
            "key": prompt.key,
            "category": prompt.category.value,
            "source": prompt.source,
            "variables": prompt.variables,
        }


_prompt_manager: Optional[PromptManager] = None


def get_prompt_manager() -> PromptManager:
    """Process-wide PromptManager, loaded on creation"""
    global _prompt_manager
    if _prompt_manager is None:
        _prompt_manager = PromptManager()
        _prompt_manager.load_prompts()
    return _prompt_manager
