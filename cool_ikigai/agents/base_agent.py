# cool_ikigai/agents/base_agent.py
"""
Agents turn a request ("greet", "ask the talents question", "confirm this
summary") into ready-to-speak messages. They never decide where the
dialogue goes next; the flow handlers do.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Optional, Any
from dataclasses import dataclass, field
from enum import Enum

from cool_ikigai.core.prompt_manager import PromptManager, PromptType, get_prompt_manager
from cool_ikigai.core.exceptions import ValidationError
from cool_ikigai.services.gpt_service import GPTService


class MessageType(str, Enum):
    GREETING = "greeting"
    QUESTION = "question"
    RESPONSE = "response"
    ERROR = "error"
    CONFIRMATION = "confirmation"


@dataclass
class BobMessage:
    """A line to speak, with the reply options offered alongside it"""
    sender: str
    text: str
    message_type: str = MessageType.RESPONSE.value
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def options(self) -> List[str]:
        return list(self.metadata.get("options", []))


@dataclass
class AgentContext:
    """What the flow handler asks for; details go in metadata"""
    session_id: str
    user_input: str = ""
    message_type: MessageType = MessageType.RESPONSE
    metadata: Dict[str, Any] = field(default_factory=dict)


class BaseAgent(ABC):
    """Prompt lookup and message construction shared by the agents"""

    def __init__(
        self,
        name: str,
        role: str,
        prompt_manager: Optional[PromptManager] = None,
        gpt_service: Optional[GPTService] = None
    ):
        self.name = name
        self.role = role
        self.prompt_manager = prompt_manager or get_prompt_manager()
        self.gpt_service = gpt_service

    @abstractmethod
    async def respond(self, context: AgentContext) -> List[BobMessage]:
        """
        Raises:
            AgentError: The messages could not be built
        """

    @abstractmethod
    def get_supported_message_types(self) -> List[MessageType]:
        ...

    async def health_check(self) -> Dict[str, Any]:
        services: Dict[str, str] = {}
        healthy = True

        try:
            self.prompt_manager.get_prompt(PromptType.BOB_INTRODUCTION)
            services["prompt_manager"] = "healthy"
        except Exception as e:
            services["prompt_manager"] = f"error: {e}"
            healthy = False

        # Free chat degrades to the fallback line, so it does not affect health
        if self.gpt_service:
            try:
                gpt = await self.gpt_service.health_check()
                services["gpt_service"] = "healthy" if gpt.get("healthy") else "unhealthy"
            except Exception as e:
                services["gpt_service"] = f"error: {e}"

        return {"agent": self.name, "role": self.role, "healthy": healthy, "services": services}

    def create_message(
        self,
        text: str,
        message_type: MessageType = MessageType.RESPONSE,
        options: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> BobMessage:
        return BobMessage(
            sender=self.role,
            text=text.strip(),
            message_type=message_type.value,
            metadata={**(metadata or {}), "options": list(options or [])}
        )

    def validate_context(self, context: AgentContext) -> None:
        """
        Common checks, then the agent's own _validate_context_impl().

        Raises:
            ValidationError: The context cannot be handled
        """
        if not isinstance(context, AgentContext):
            raise ValidationError("Expected an AgentContext", value=type(context).__name__)
        if not context.session_id:
            raise ValidationError("AgentContext.session_id is empty", field="session_id")
        if context.message_type not in self.get_supported_message_types():
            raise ValidationError(
                f"{self.name} cannot produce {context.message_type} messages",
                field="message_type",
                value=context.message_type
            )

        self._validate_context_impl(context)

    def _validate_context_impl(self, context: AgentContext) -> None:
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, role={self.role!r})"
