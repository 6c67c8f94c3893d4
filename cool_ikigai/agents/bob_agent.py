# cool_ikigai/agents/bob_agent.py
"""
Bob - the Ikigai coach.

This agent only turns dialogue decisions into Bob's words: which prompt,
which variables, which answer options. The flow handlers decide what
Bob says next.
"""

from typing import List, Dict, Optional
import logging

from cool_ikigai.agents.base_agent import BaseAgent, AgentContext, MessageType, BobMessage
from cool_ikigai.core.exceptions import AgentError, ValidationError
from cool_ikigai.core.prompt_manager import PromptType
from cool_ikigai.models.flow_models import Domain, Message

logger = logging.getLogger(__name__)


# Answer options offered with a message
OPTION_SETS: Dict[str, List[PromptType]] = {
    "none": [],
    "start": [PromptType.OPTION_START],
    "continue": [PromptType.OPTION_CONTINUE],
    "yes_no": [PromptType.OPTION_YES, PromptType.OPTION_NO],
    "yes_no_unsure": [PromptType.OPTION_YES, PromptType.OPTION_NO, PromptType.OPTION_NOT_SURE],
}

DOMAIN_PROMPTS: Dict[Domain, Dict[str, PromptType]] = {
    Domain.PASSIONS: {
        "question": PromptType.BOB_PASSIONS_QUESTION,
        "unknown": PromptType.BOB_PASSIONS_UNKNOWN,
        "elaborate": PromptType.BOB_PASSIONS_ELABORATE,
        "encourage": PromptType.BOB_PASSIONS_ENCOURAGE,
        "validate": PromptType.BOB_PASSIONS_VALIDATE,
    },
    Domain.TALENTS: {
        "question": PromptType.BOB_TALENTS_QUESTION,
        "unknown": PromptType.BOB_TALENTS_UNKNOWN,
        "elaborate": PromptType.BOB_TALENTS_ELABORATE,
        "encourage": PromptType.BOB_TALENTS_ENCOURAGE,
        "validate": PromptType.BOB_TALENTS_VALIDATE,
    },
    Domain.WORLD_NEEDS: {
        "question": PromptType.BOB_WORLD_NEEDS_QUESTION,
        "encourage": PromptType.BOB_WORLD_NEEDS_ENCOURAGE,
        "validate": PromptType.BOB_WORLD_NEEDS_VALIDATE,
    },
    Domain.MONETIZATION: {
        "question": PromptType.BOB_MONETIZATION_QUESTION,
        "encourage": PromptType.BOB_MONETIZATION_ENCOURAGE,
        "validate": PromptType.BOB_MONETIZATION_VALIDATE,
    },
}

ERROR_PROMPTS: Dict[str, PromptType] = {
    "invalid_yes_no": PromptType.BOB_ASK_YES_NO,
    "document": PromptType.BOB_DOCUMENT_ERROR,
    "document_not_ready": PromptType.BOB_DOCUMENT_NOT_READY,
    "technical": PromptType.BOB_CHAT_FALLBACK,
}


class BobAgent(BaseAgent):
    """
    Formats everything Bob says.

    Message types:
    - GREETING: introduction (optionally preceded by the restart line)
    - QUESTION: a domain prompt (metadata: domain, prompt_kind) or any
      prompt (metadata: prompt_type, prompt_vars), with an option set
    - CONFIRMATION: "did I get that right?" for a domain summary
    - RESPONSE: a plain statement (metadata: prompt_type, prompt_vars)
    - ERROR: re-ask or apology (metadata: error_type)
    """

    def __init__(self, **kwargs):
        super().__init__(
            name="Bob",
            role="bob",
            **kwargs
        )

    def get_supported_message_types(self) -> List[MessageType]:
        return [
            MessageType.GREETING,
            MessageType.QUESTION,
            MessageType.CONFIRMATION,
            MessageType.RESPONSE,
            MessageType.ERROR
        ]

    async def respond(self, context: AgentContext) -> List[BobMessage]:
        """
        Generate Bob's messages for the context.

        Raises:
            AgentError: If the context is invalid or a prompt cannot be built
        """
        try:
            self.validate_context(context)

            if context.message_type == MessageType.GREETING:
                return self._handle_greeting(context)
            elif context.message_type == MessageType.QUESTION:
                return self._handle_question(context)
            elif context.message_type == MessageType.CONFIRMATION:
                return self._handle_confirmation(context)
            elif context.message_type == MessageType.RESPONSE:
                return self._handle_response(context)
            elif context.message_type == MessageType.ERROR:
                return self._handle_error(context)
            else:
                raise AgentError(f"Unsupported message type: {context.message_type}", agent_name=self.name)

        except AgentError:
            raise
        except Exception as e:
            logger.error(f"Bob could not build a {context.message_type} message: {e}")
            raise AgentError(f"Message generation failed: {e}", agent_name=self.name) from e

    def _handle_greeting(self, context: AgentContext) -> List[BobMessage]:
        messages = []
        if context.metadata.get("restart"):
            messages.append(self.create_message(
                self.prompt_manager.get_prompt(PromptType.BOB_RESTART),
                MessageType.RESPONSE
            ))
        messages.append(self.create_message(
            self.prompt_manager.get_prompt(PromptType.BOB_INTRODUCTION),
            MessageType.GREETING,
            options=self.get_options("start")
        ))
        return messages

    def _handle_question(self, context: AgentContext) -> List[BobMessage]:
        domain = context.metadata.get("domain")
        if domain is not None:
            prompt_type = DOMAIN_PROMPTS[domain][context.metadata.get("prompt_kind", "question")]
        else:
            prompt_type = context.metadata["prompt_type"]

        text = self.prompt_manager.get_prompt(prompt_type, **context.metadata.get("prompt_vars", {}))
        return [self.create_message(
            text,
            MessageType.QUESTION,
            options=self.get_options(context.metadata.get("options", "none"))
        )]

    def _handle_confirmation(self, context: AgentContext) -> List[BobMessage]:
        domain = context.metadata["domain"]
        text = self.prompt_manager.get_prompt(
            DOMAIN_PROMPTS[domain]["validate"],
            summary=context.metadata.get("summary", "")
        )
        return [self.create_message(text, MessageType.CONFIRMATION, options=self.get_options("yes_no"))]

    def _handle_response(self, context: AgentContext) -> List[BobMessage]:
        text = self.prompt_manager.get_prompt(
            context.metadata["prompt_type"],
            **context.metadata.get("prompt_vars", {})
        )
        return [self.create_message(
            text,
            MessageType.RESPONSE,
            options=self.get_options(context.metadata.get("options", "none"))
        )]

    def _handle_error(self, context: AgentContext) -> List[BobMessage]:
        error_type = context.metadata.get("error_type", "technical")
        prompt_type = ERROR_PROMPTS.get(error_type, PromptType.BOB_CHAT_FALLBACK)
        return [self.create_message(
            self.prompt_manager.get_prompt(prompt_type),
            MessageType.ERROR,
            options=self.get_options(context.metadata.get("options", "none"))
        )]

    def get_options(self, option_set: str) -> List[str]:
        """Resolve an option set name to its labels"""
        if option_set not in OPTION_SETS:
            raise ValidationError(f"Unknown option set: {option_set}", field="options", value=option_set)
        return [self.prompt_manager.get_prompt(option) for option in OPTION_SETS[option_set]]

    def _validate_context_impl(self, context: AgentContext) -> None:
        if context.message_type == MessageType.CONFIRMATION and "domain" not in context.metadata:
            raise ValidationError("Confirmation context requires 'domain' in metadata", field="domain")

        if context.message_type == MessageType.RESPONSE and "prompt_type" not in context.metadata:
            raise ValidationError("Response context requires 'prompt_type' in metadata", field="prompt_type")

        domain = context.metadata.get("domain")
        prompt_kind = context.metadata.get("prompt_kind")
        if domain is not None and prompt_kind and prompt_kind not in DOMAIN_PROMPTS[domain]:
            raise ValidationError(
                f"No '{prompt_kind}' prompt for {domain.value}",
                field="prompt_kind",
                value=prompt_kind
            )

    # ===========================================
    # FREE CHAT
    # ===========================================

    async def chat(self, transcript: List[Message]) -> str:
        """
        Free-chat reply outside the Ikigai flow.

        Any failure of the language model (missing key, network, empty
        reply) yields Bob's fallback line instead of an error.
        """
        if self.gpt_service is None:
            logger.warning("No GPT service configured, using chat fallback")
            return self.prompt_manager.get_prompt(PromptType.BOB_CHAT_FALLBACK)

        try:
            return await self.gpt_service.get_answer(
                transcript,
                system_prompt=self.prompt_manager.get_prompt(PromptType.BOB_CHAT_SYSTEM)
            )
        except Exception as e:
            logger.error(f"Free chat failed: {e}")
            return self.prompt_manager.get_prompt(PromptType.BOB_CHAT_FALLBACK)
