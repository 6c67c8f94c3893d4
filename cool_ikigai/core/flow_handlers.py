# cool_ikigai/core/flow_handlers.py
"""
Flow handlers for the Ikigai flow engine.

Each handler runs during one state transition: it updates the IkigaiState,
asks Bob for the words to say and records side effects (timers, delivery,
coaching) in context['effects']. Handlers never perform I/O themselves;
the conversation session executes the effects.
"""

from typing import Dict, List, Optional, Any, Tuple, Union
import logging

from cool_ikigai.core.config import settings
from cool_ikigai.models.session_state import IkigaiState
from cool_ikigai.models.flow_models import ConversationStep, Domain, Effect, EffectType
from cool_ikigai.agents.bob_agent import BobAgent, DOMAIN_PROMPTS
from cool_ikigai.agents.base_agent import AgentContext, MessageType, BobMessage
from cool_ikigai.services.validation_service import AnswerClass, ValidationService, ValidationResult
from cool_ikigai.services.career_matcher import suggest_careers
from cool_ikigai.services import summary_composer
from cool_ikigai.services.text_analyzer import analyze
from cool_ikigai.core.prompt_manager import PromptManager, PromptType, get_prompt_manager

logger = logging.getLogger(__name__)

HandlerResult = Union[List[BobMessage], Tuple[ConversationStep, List[BobMessage]]]

# Free-text step -> domain it collects
STEP_DOMAINS: Dict[ConversationStep, Domain] = {
    ConversationStep.PASSIONS: Domain.PASSIONS,
    ConversationStep.TALENTS: Domain.TALENTS,
    ConversationStep.WORLD_NEEDS: Domain.WORLD_NEEDS,
    ConversationStep.MONETIZATION: Domain.MONETIZATION,
}

# Validation step -> domain it confirms
VALIDATION_DOMAINS: Dict[ConversationStep, Domain] = {
    ConversationStep.VALIDATE_PASSIONS: Domain.PASSIONS,
    ConversationStep.VALIDATE_TALENTS: Domain.TALENTS,
    ConversationStep.VALIDATE_WORLD_NEEDS: Domain.WORLD_NEEDS,
    ConversationStep.VALIDATE_MONETIZATION: Domain.MONETIZATION,
}

DOMAIN_ORDER: List[Domain] = [Domain.PASSIONS, Domain.TALENTS, Domain.WORLD_NEEDS, Domain.MONETIZATION]


def add_effect(context: Dict[str, Any], effect_type: EffectType, **payload) -> None:
    """Queue a side effect for the session to execute after the turn"""
    context.setdefault('effects', []).append(Effect(type=effect_type, payload=payload))


class FlowHandlers:
    """
    Implements all flow handlers for the Ikigai FSM.

    Each handler corresponds to one transition (or a family of
    transitions over the four domains) and decides what Bob says.
    """

    def __init__(
        self,
        bob_agent: Optional[BobAgent] = None,
        prompt_manager: Optional[PromptManager] = None,
        validation_service: Optional[ValidationService] = None,
        goodbye_delay: Optional[float] = None
    ):
        """
        Initialize flow handlers.

        Args:
            bob_agent: Formats Bob's messages
            prompt_manager: Centralized prompt management
            validation_service: Answer classification and domain gates
            goodbye_delay: Seconds between the goodbye and the conclusion
        """
        self.prompt_manager = prompt_manager or get_prompt_manager()
        self.validation_service = validation_service or ValidationService()
        self.bob_agent = bob_agent or BobAgent(prompt_manager=self.prompt_manager)
        self.goodbye_delay = settings.GOODBYE_DELAY_SECONDS if goodbye_delay is None else goodbye_delay

        logger.info("FlowHandlers initialized")

    async def _say(self, state: IkigaiState, message_type: MessageType, **metadata) -> List[BobMessage]:
        return await self.bob_agent.respond(AgentContext(
            session_id=state.session_id,
            message_type=message_type,
            metadata=metadata
        ))

    # ===========================================
    # INTRODUCTION & READINESS
    # ===========================================

    async def handle_greeting(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        """Introduction prompt on start()"""
        logger.info(f"Starting Ikigai flow for session {state.session_id}")
        return await self._say(state, MessageType.GREETING)

    async def handle_ready_question(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        return await self._say(
            state, MessageType.QUESTION,
            prompt_type=PromptType.BOB_READY_QUESTION, options="yes_no_unsure"
        )

    async def handle_ready_clarify(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        return await self._say(
            state, MessageType.QUESTION,
            prompt_type=PromptType.BOB_READY_CLARIFY, options="yes_no_unsure"
        )

    async def handle_not_ready(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        """Goodbye now, conclusion after a delay"""
        logger.info(f"User not ready, concluding in {self.goodbye_delay}s")
        add_effect(context, EffectType.SCHEDULE_CONCLUSION, delay=self.goodbye_delay)
        return await self._say(state, MessageType.RESPONSE, prompt_type=PromptType.BOB_NOT_READY_GOODBYE)

    async def handle_invalid_yes_no(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        options = "yes_no_unsure" if state.current_step == ConversationStep.READY_CHECK else "yes_no"
        return await self._say(state, MessageType.ERROR, error_type="invalid_yes_no", options=options)

    async def handle_restart(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        """Restart command from any step"""
        logger.info(f"Restart requested at {state.current_step.value}")
        state.clear()
        return await self._say(state, MessageType.GREETING, restart=True)

    # ===========================================
    # DOMAIN ANSWERS
    # ===========================================

    async def ask_domain_question(self, state: IkigaiState, domain: Domain) -> List[BobMessage]:
        return await self._say(state, MessageType.QUESTION, domain=domain)

    async def handle_start_passions(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        return await self.ask_domain_question(state, Domain.PASSIONS)

    async def handle_domain_unknown(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        domain = STEP_DOMAINS[state.current_step]
        logger.info(f"User does not know their {domain.value}")
        return await self._say(state, MessageType.QUESTION, domain=domain, prompt_kind="unknown")

    async def handle_domain_too_short(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        domain = STEP_DOMAINS[state.current_step]
        return await self._say(state, MessageType.QUESTION, domain=domain, prompt_kind="elaborate")

    async def handle_domain_low_confidence(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        domain = STEP_DOMAINS[state.current_step]
        logger.info(f"Low confidence answer for {domain.value}")

        if domain == Domain.MONETIZATION:
            careers = suggest_careers(
                state.domain_keywords.get(Domain.PASSIONS, []),
                state.domain_keywords.get(Domain.TALENTS, []),
                state.domain_keywords.get(Domain.WORLD_NEEDS, []),
            )
            if careers:
                return await self._say(
                    state, MessageType.QUESTION,
                    prompt_type=PromptType.BOB_MONETIZATION_CAREER_SUGGESTION,
                    prompt_vars={"careers": ", ".join(careers)}
                )

        return await self._say(state, MessageType.QUESTION, domain=domain, prompt_kind="encourage")

    async def handle_domain_accepted(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        """Store the distilled answer and ask for confirmation"""
        domain = STEP_DOMAINS[state.current_step]

        validation: Optional[ValidationResult] = context.get('validation')
        analysis = validation.analysis if validation and validation.analysis else analyze(user_input, domain)

        summary = ", ".join(analysis.topics) if analysis.topics else user_input.strip()
        state.set_summary(domain, summary, analysis.keywords)
        logger.info(f"Stored {domain.value} summary: '{summary[:50]}'")

        return await self._say(state, MessageType.CONFIRMATION, domain=domain, summary=summary)

    # ===========================================
    # DOMAIN CONFIRMATION
    # ===========================================

    async def handle_domain_confirmed(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        """Move on to the next domain, or to the summary after the last one"""
        domain = VALIDATION_DOMAINS[state.current_step]
        index = DOMAIN_ORDER.index(domain)

        if index == len(DOMAIN_ORDER) - 1:
            return await self.handle_summary(state, user_input, context)

        messages: List[BobMessage] = []
        if domain == Domain.TALENTS:
            passion_keywords = state.domain_keywords.get(Domain.PASSIONS, [])
            talent_keywords = set(state.domain_keywords.get(Domain.TALENTS, []))
            shared = [keyword for keyword in passion_keywords if keyword in talent_keywords]
            if shared:
                messages.extend(await self._say(
                    state, MessageType.RESPONSE,
                    prompt_type=PromptType.BOB_TALENTS_CONNECTION,
                    prompt_vars={"themes": ", ".join(shared)}
                ))

        messages.extend(await self.ask_domain_question(state, DOMAIN_ORDER[index + 1]))
        return messages

    async def handle_domain_rejected(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        """Back to the domain question; the previous summary stays until overwritten"""
        domain = VALIDATION_DOMAINS[state.current_step]
        logger.info(f"User rejected the {domain.value} summary")

        question = self.prompt_manager.get_prompt(DOMAIN_PROMPTS[domain]["question"])
        return await self._say(
            state, MessageType.QUESTION,
            prompt_type=PromptType.BOB_REPHRASE,
            prompt_vars={"question": question}
        )

    # ===========================================
    # SUMMARY & DELIVERY
    # ===========================================

    async def handle_summary(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        """Compose the IkigaiSummary once and offer delivery"""
        if state.ikigai_summary is None and state.has_all_summaries():
            state.ikigai_summary = summary_composer.compose(
                state.get_summary(Domain.PASSIONS),
                state.get_summary(Domain.TALENTS),
                state.get_summary(Domain.WORLD_NEEDS),
                state.get_summary(Domain.MONETIZATION),
                prompt_manager=self.prompt_manager
            )
            logger.info(f"Ikigai summary composed for session {state.session_id}")

        messages: List[BobMessage] = []
        if state.ikigai_summary is not None:
            messages.extend(await self._say(
                state, MessageType.RESPONSE,
                prompt_type=PromptType.BOB_SUMMARY_INTRO,
                prompt_vars={"narrative": state.ikigai_summary.narrative}
            ))
        else:
            logger.warning("Reached summary without all four domain summaries")

        messages.extend(await self._say(
            state, MessageType.QUESTION,
            prompt_type=PromptType.BOB_DELIVERY_QUESTION, options="yes_no"
        ))
        return messages

    async def handle_delivery_answer(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        answer = self.validation_service.classify_answer(user_input)
        prompt_type = (
            PromptType.BOB_DELIVERY_ACCEPTED if answer == AnswerClass.AFFIRMATIVE
            else PromptType.BOB_DELIVERY_DECLINED
        )
        return await self._say(state, MessageType.RESPONSE, prompt_type=prompt_type, options="continue")

    async def handle_contact_question(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        return await self._say(state, MessageType.QUESTION, prompt_type=PromptType.BOB_CONTACT_QUESTION)

    async def handle_contact_entry(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        """Store the contact and request delivery, then ask about coaching"""
        contact = user_input.strip()
        if self.validation_service.validate_contact(contact).valid:
            state.contact_info = contact
            add_effect(context, EffectType.DELIVER_SUMMARY, contact=contact)
            prompt_type = PromptType.BOB_CONTACT_THANKS
        else:
            logger.info(f"Unrecognised contact for session {state.session_id}, nothing will be sent")
            prompt_type = PromptType.BOB_CONTACT_INVALID

        messages = await self._say(
            state, MessageType.RESPONSE,
            prompt_type=prompt_type,
            prompt_vars={"contact": contact}
        )
        messages.extend(await self.handle_coaching_question(state, user_input, context))
        return messages

    # ===========================================
    # COACHING & CONCLUSION
    # ===========================================

    async def handle_coaching_question(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        return await self._say(
            state, MessageType.QUESTION,
            prompt_type=PromptType.BOB_COACHING_QUESTION, options="yes_no_unsure"
        )

    async def handle_coaching_accepted(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        return await self._say(state, MessageType.QUESTION, prompt_type=PromptType.BOB_COACHING_SCHEDULE)

    async def handle_coaching_unsure(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        return await self._say(
            state, MessageType.QUESTION,
            prompt_type=PromptType.BOB_COACHING_CONFIRMATION, options="continue"
        )

    async def handle_coaching_request(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        """Name and email for the coaching booking, then conclude"""
        state.coaching_request = user_input.strip()
        add_effect(context, EffectType.SCHEDULE_COACHING, raw=state.coaching_request)
        return await self.handle_conclusion(state, user_input, context)

    async def handle_conclusion(self, state: IkigaiState, user_input: str, context: Dict[str, Any]) -> HandlerResult:
        """Closing message; the flow stops after this turn"""
        logger.info(f"Concluding Ikigai flow for session {state.session_id}")
        state.is_active = False
        context['terminal'] = True
        return await self._say(state, MessageType.RESPONSE, prompt_type=PromptType.BOB_CONCLUSION)
