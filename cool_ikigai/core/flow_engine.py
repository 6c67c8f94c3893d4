# cool_ikigai/core/flow_engine.py
"""
Ikigai Flow Engine - declarative FSM driving Bob's dialogue.

Every (step, event) pair maps to one Transition with a target step and a
handler. classify_user_input turns an utterance into an event for the
current step; process_event runs the handler and moves the state.
"""

from typing import Dict, List, Optional, Any, Callable, Awaitable, Tuple
from enum import Enum
from dataclasses import dataclass
import logging

from cool_ikigai.models.flow_models import ConversationStep
from cool_ikigai.models.session_state import IkigaiState
from cool_ikigai.agents.base_agent import BobMessage
from cool_ikigai.core.exceptions import FlowError, ValidationError
from cool_ikigai.core.flow_handlers import FlowHandlers, STEP_DOMAINS, VALIDATION_DOMAINS
from cool_ikigai.services.validation_service import AnswerClass

logger = logging.getLogger(__name__)

TransitionHandler = Callable[[IkigaiState, str, Dict[str, Any]], Awaitable[Any]]


class FlowEvent(str, Enum):
    """What a user turn (or the goodbye timer) amounts to at the current step"""

    # Flow control
    START_SESSION = "start_session"
    TIMER_ELAPSED = "timer_elapsed"

    # Free input
    USER_INPUT = "user_input"

    # Short answers
    AFFIRMATIVE = "affirmative"
    NEGATIVE = "negative"
    UNCERTAIN = "uncertain"
    UNCLASSIFIED = "unclassified"

    # Domain answers
    ANSWER_ACCEPTED = "answer_accepted"
    ANSWER_UNKNOWN = "answer_unknown"
    ANSWER_TOO_SHORT = "answer_too_short"
    ANSWER_LOW_CONFIDENCE = "answer_low_confidence"

    # Special commands
    RESTART_COMMAND = "restart_command"  # "recommencer", "restart", ...


ANSWER_EVENTS: Dict[AnswerClass, FlowEvent] = {
    AnswerClass.AFFIRMATIVE: FlowEvent.AFFIRMATIVE,
    AnswerClass.NEGATIVE: FlowEvent.NEGATIVE,
    AnswerClass.UNCERTAIN: FlowEvent.UNCERTAIN,
    AnswerClass.UNCLASSIFIED: FlowEvent.UNCLASSIFIED,
}

VALIDATION_EVENTS: Dict[str, FlowEvent] = {
    "dont_know": FlowEvent.ANSWER_UNKNOWN,
    "too_short": FlowEvent.ANSWER_TOO_SHORT,
    "low_confidence": FlowEvent.ANSWER_LOW_CONFIDENCE,
}

# Steps that accept any input
FREE_INPUT_STEPS = [
    ConversationStep.INTRODUCTION,
    ConversationStep.SUMMARY,
    ConversationStep.CONTACT_ENTRY,
    ConversationStep.COACHING_SCHEDULE,
    ConversationStep.COACHING_CONFIRMATION,
]


@dataclass
class Transition:
    """One edge of the dialogue graph"""
    from_state: ConversationStep
    event: FlowEvent
    to_state: ConversationStep
    handler: Optional[TransitionHandler] = None
    description: str = ""


class FlowEngine:
    """
    Transition table for the Ikigai dialogue.

    The table only knows steps and events; what Bob says and which side
    effects a turn requests live in FlowHandlers.
    """

    def __init__(self, flow_handlers: Optional[FlowHandlers] = None):
        self.logger = logging.getLogger(__name__)

        self.handlers = flow_handlers or FlowHandlers()
        self.validation_service = self.handlers.validation_service

        self.transitions: List[Transition] = []

        self._transition_map: Dict[tuple, Transition] = {}

        self._setup_transitions()
        self._build_transition_map()

        logger.info(f"FlowEngine initialized with {len(self.transitions)} transitions")

    def _setup_transitions(self):
        h = self.handlers

        # introduction & readiness

        self.add_transition(
            from_state=ConversationStep.INTRODUCTION,
            event=FlowEvent.START_SESSION,
            to_state=ConversationStep.INTRODUCTION,
            handler=h.handle_greeting,
            description="start() -> introduction"
        )

        self.add_transition(
            from_state=ConversationStep.INTRODUCTION,
            event=FlowEvent.USER_INPUT,
            to_state=ConversationStep.READY_CHECK,
            handler=h.handle_ready_question,
            description="Any input -> are you ready?"
        )

        self.add_transition(
            from_state=ConversationStep.READY_CHECK,
            event=FlowEvent.AFFIRMATIVE,
            to_state=ConversationStep.PASSIONS,
            handler=h.handle_start_passions,
            description="Ready -> first domain question"
        )

        self.add_transition(
            from_state=ConversationStep.READY_CHECK,
            event=FlowEvent.NEGATIVE,
            to_state=ConversationStep.READY_CHECK,
            handler=h.handle_not_ready,
            description="Not ready -> goodbye, conclusion after a delay"
        )

        self.add_transition(
            from_state=ConversationStep.READY_CHECK,
            event=FlowEvent.UNCERTAIN,
            to_state=ConversationStep.READY_CHECK,
            handler=h.handle_ready_clarify,
            description="Unsure -> reassure and ask again"
        )

        self.add_transition(
            from_state=ConversationStep.READY_CHECK,
            event=FlowEvent.UNCLASSIFIED,
            to_state=ConversationStep.READY_CHECK,
            handler=h.handle_invalid_yes_no,
            description="Unclear -> ask for yes or no"
        )

        self.add_transition(
            from_state=ConversationStep.READY_CHECK,
            event=FlowEvent.TIMER_ELAPSED,
            to_state=ConversationStep.CONCLUSION,
            handler=h.handle_conclusion,
            description="Goodbye delay elapsed -> conclusion"
        )

        # domain questions

        for step in STEP_DOMAINS:
            validate_step = ConversationStep(f"validate_{step.value}")

            self.add_transition(
                from_state=step,
                event=FlowEvent.ANSWER_ACCEPTED,
                to_state=validate_step,
                handler=h.handle_domain_accepted,
                description=f"{step.value} answer accepted -> confirm summary"
            )

            self.add_transition(
                from_state=step,
                event=FlowEvent.ANSWER_LOW_CONFIDENCE,
                to_state=step,
                handler=h.handle_domain_low_confidence,
                description=f"{step.value} answer unclear -> encourage"
            )

        for step in (ConversationStep.PASSIONS, ConversationStep.TALENTS):
            self.add_transition(
                from_state=step,
                event=FlowEvent.ANSWER_UNKNOWN,
                to_state=step,
                handler=h.handle_domain_unknown,
                description=f"{step.value}: don't know -> help prompt"
            )

            self.add_transition(
                from_state=step,
                event=FlowEvent.ANSWER_TOO_SHORT,
                to_state=step,
                handler=h.handle_domain_too_short,
                description=f"{step.value}: too short -> ask to elaborate"
            )

        # domain confirmation

        next_steps = {
            ConversationStep.VALIDATE_PASSIONS: ConversationStep.TALENTS,
            ConversationStep.VALIDATE_TALENTS: ConversationStep.WORLD_NEEDS,
            ConversationStep.VALIDATE_WORLD_NEEDS: ConversationStep.MONETIZATION,
            ConversationStep.VALIDATE_MONETIZATION: ConversationStep.SUMMARY,
        }

        for validate_step, next_step in next_steps.items():
            domain_step = ConversationStep(validate_step.value.replace("validate_", "", 1))

            self.add_transition(
                from_state=validate_step,
                event=FlowEvent.AFFIRMATIVE,
                to_state=next_step,
                handler=h.handle_domain_confirmed,
                description=f"{domain_step.value} confirmed -> {next_step.value}"
            )

            self.add_transition(
                from_state=validate_step,
                event=FlowEvent.NEGATIVE,
                to_state=domain_step,
                handler=h.handle_domain_rejected,
                description=f"{domain_step.value} rejected -> ask again"
            )

            for event in (FlowEvent.UNCERTAIN, FlowEvent.UNCLASSIFIED):
                self.add_transition(
                    from_state=validate_step,
                    event=event,
                    to_state=validate_step,
                    handler=h.handle_invalid_yes_no,
                    description=f"{domain_step.value} confirmation unclear -> ask for yes or no"
                )

        # summary & delivery

        self.add_transition(
            from_state=ConversationStep.SUMMARY,
            event=FlowEvent.USER_INPUT,
            to_state=ConversationStep.EMAIL_REQUEST,
            handler=h.handle_delivery_answer,
            description="Delivery answer -> acknowledge"
        )

        self.add_transition(
            from_state=ConversationStep.EMAIL_REQUEST,
            event=FlowEvent.AFFIRMATIVE,
            to_state=ConversationStep.CONTACT_ENTRY,
            handler=h.handle_contact_question,
            description="Delivery wanted -> ask for contact"
        )

        self.add_transition(
            from_state=ConversationStep.EMAIL_REQUEST,
            event=FlowEvent.NEGATIVE,
            to_state=ConversationStep.COACHING,
            handler=h.handle_coaching_question,
            description="No delivery -> offer coaching"
        )

        self.add_transition(
            from_state=ConversationStep.CONTACT_ENTRY,
            event=FlowEvent.USER_INPUT,
            to_state=ConversationStep.COACHING,
            handler=h.handle_contact_entry,
            description="Contact received -> offer coaching"
        )

        # coaching & conclusion

        self.add_transition(
            from_state=ConversationStep.COACHING,
            event=FlowEvent.AFFIRMATIVE,
            to_state=ConversationStep.COACHING_SCHEDULE,
            handler=h.handle_coaching_accepted,
            description="Coaching wanted -> ask for name and email"
        )

        self.add_transition(
            from_state=ConversationStep.COACHING,
            event=FlowEvent.UNCERTAIN,
            to_state=ConversationStep.COACHING_CONFIRMATION,
            handler=h.handle_coaching_unsure,
            description="Unsure about coaching -> explain"
        )

        self.add_transition(
            from_state=ConversationStep.COACHING,
            event=FlowEvent.NEGATIVE,
            to_state=ConversationStep.CONCLUSION,
            handler=h.handle_conclusion,
            description="No coaching -> conclusion"
        )

        self.add_transition(
            from_state=ConversationStep.COACHING_SCHEDULE,
            event=FlowEvent.USER_INPUT,
            to_state=ConversationStep.CONCLUSION,
            handler=h.handle_coaching_request,
            description="Booking details -> schedule and conclude"
        )

        self.add_transition(
            from_state=ConversationStep.COACHING_CONFIRMATION,
            event=FlowEvent.USER_INPUT,
            to_state=ConversationStep.CONCLUSION,
            handler=h.handle_conclusion,
            description="Any input -> conclusion"
        )

        # universal restart transitions

        for step in ConversationStep:
            if step == ConversationStep.CONCLUSION:
                continue
            self.add_transition(
                from_state=step,
                event=FlowEvent.RESTART_COMMAND,
                to_state=ConversationStep.INTRODUCTION,
                handler=h.handle_restart,
                description=f"Restart command from {step.value} -> introduction"
            )

    def add_transition(
        self,
        from_state: ConversationStep,
        event: FlowEvent,
        to_state: ConversationStep,
        handler: Optional[TransitionHandler] = None,
        description: str = ""
    ):
        self.transitions.append(Transition(from_state, event, to_state, handler, description))

    def _build_transition_map(self):
        self._transition_map = {}
        for transition in self.transitions:
            key = (transition.from_state, transition.event)
            if key in self._transition_map:
                self.logger.warning(f"Duplicate transition {key[0].value}/{key[1].value}, keeping the later one")
            self._transition_map[key] = transition

    def get_valid_transitions(self, current_state: ConversationStep) -> List[Transition]:
        return [t for t in self.transitions if t.from_state == current_state]

    def can_transition(self, current_state: ConversationStep, event: FlowEvent) -> bool:
        return (current_state, event) in self._transition_map

    async def process_event(
        self,
        state: IkigaiState,
        event: FlowEvent,
        user_input: str = "",
        context: Optional[Dict[str, Any]] = None
    ) -> Tuple[ConversationStep, List[BobMessage]]:
        """
        Run the transition for (state.current_step, event).

        The step only moves once the handler has returned, so a failing
        handler leaves the state where it was.

        Args:
            state: Ikigai state, updated in place
            event: Classified event
            user_input: The utterance that produced the event
            context: Turn context; handlers add 'effects' and 'terminal'

        Returns:
            (new step, Bob's messages)

        Raises:
            FlowError: No transition for the pair, or the handler failed
        """
        current_state = state.current_step
        transition = self._transition_map.get((current_state, event))

        if transition is None:
            allowed = [t.event.value for t in self.get_valid_transitions(current_state)]
            self.logger.warning(f"No transition for {event.value} at {current_state.value} (allowed: {allowed})")
            raise FlowError(
                f"Invalid transition: {current_state.value} + {event.value}",
                current_state=current_state.value,
                details={'allowed_events': allowed}
            )

        self.logger.info(f"{current_state.value} --{event.value}--> {transition.to_state.value}")

        messages: List[BobMessage] = []
        if transition.handler:
            try:
                messages = await transition.handler(state, user_input, context if context is not None else {})
            except (ValidationError, FlowError):
                raise
            except Exception as e:
                self.logger.error(f"Handler for {current_state.value}/{event.value} failed: {e}")
                raise FlowError(
                    f"Transition execution failed: {e}",
                    current_state=current_state.value
                ) from e

        state.current_step = transition.to_state
        return transition.to_state, messages or []

    def classify_user_input(
        self,
        user_input: str,
        state: IkigaiState,
        context: Optional[Dict[str, Any]] = None
    ) -> FlowEvent:
        """
        Classify user input into the event for the current step.

        Domain steps store their ValidationResult in context['validation']
        so the handler can reuse the analysis.

        Args:
            user_input: User's input text
            state: Current Ikigai state
            context: Turn context

        Returns:
            Classified FlowEvent
        """
        current_state = state.current_step
        context = context if context is not None else {}

        # Universal restart commands
        if current_state != ConversationStep.CONCLUSION and self.validation_service.is_restart_command(user_input):
            return FlowEvent.RESTART_COMMAND

        if current_state in FREE_INPUT_STEPS:
            return FlowEvent.USER_INPUT

        if current_state in STEP_DOMAINS:
            validation = self.validation_service.validate_domain_answer(user_input, STEP_DOMAINS[current_state])
            context['validation'] = validation
            if validation.valid:
                return FlowEvent.ANSWER_ACCEPTED
            return VALIDATION_EVENTS.get(validation.error_type, FlowEvent.ANSWER_LOW_CONFIDENCE)

        if current_state == ConversationStep.EMAIL_REQUEST:
            # This step's prompt followed the delivery answer, so decide on that one
            prior = state.prior_response()
            answer = self.validation_service.classify_answer(prior.raw_text) if prior else AnswerClass.UNCLASSIFIED
            return FlowEvent.AFFIRMATIVE if answer == AnswerClass.AFFIRMATIVE else FlowEvent.NEGATIVE

        if current_state == ConversationStep.COACHING:
            answer = self.validation_service.classify_answer(user_input)
            if answer in (AnswerClass.AFFIRMATIVE, AnswerClass.UNCERTAIN):
                return ANSWER_EVENTS[answer]
            return FlowEvent.NEGATIVE

        if current_state == ConversationStep.READY_CHECK or current_state in VALIDATION_DOMAINS:
            return ANSWER_EVENTS[self.validation_service.classify_answer(user_input)]

        return FlowEvent.USER_INPUT

    def get_flow_summary(self) -> Dict[str, Any]:
        """Table dump for the startup log and debugging"""
        states = {t.from_state for t in self.transitions} | {t.to_state for t in self.transitions}
        return {
            "total_states": len(states),
            "total_transitions": len(self.transitions),
            "events": sorted({t.event.value for t in self.transitions}),
            "transitions": [
                {"from": t.from_state.value, "event": t.event.value, "to": t.to_state.value, "description": t.description}
                for t in self.transitions
            ]
        }

    def validate_fsm(self) -> List[str]:
        """Problems in the table: steps unreachable from the introduction, transitions without a handler"""
        issues = []

        reachable = {ConversationStep.INTRODUCTION}
        frontier = [ConversationStep.INTRODUCTION]
        while frontier:
            step = frontier.pop()
            for transition in self.get_valid_transitions(step):
                if transition.to_state not in reachable:
                    reachable.add(transition.to_state)
                    frontier.append(transition.to_state)

        unreachable = set(ConversationStep) - reachable
        if unreachable:
            issues.append(f"Unreachable states: {sorted(s.value for s in unreachable)}")

        missing = sum(1 for t in self.transitions if t.handler is None)
        if missing:
            issues.append(f"{missing} transitions have no handler")

        return issues


def create_flow_engine(**handler_kwargs) -> FlowEngine:
    return FlowEngine(FlowHandlers(**handler_kwargs))
