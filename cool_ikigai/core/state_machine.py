# cool_ikigai/core/state_machine.py
"""
Dialogue state machine: the public start/advance/reset contract on top of
the FlowEngine, plus the cancellable timed transition to the conclusion.
"""

import asyncio
from typing import Any, Dict, List, Optional
import logging

from cool_ikigai.agents.base_agent import BobMessage
from cool_ikigai.core.exceptions import FlowError, NotActiveError, ValidationError
from cool_ikigai.core.flow_engine import FlowEngine, FlowEvent, create_flow_engine
from cool_ikigai.models.flow_models import ConversationStep, EffectType, StepResult
from cool_ikigai.models.session_state import IkigaiState

logger = logging.getLogger(__name__)


class DialogueStateMachine:
    """
    Drives one Ikigai run.

    - start() resets everything and returns the introduction
    - advance() records the answer and applies the transition table
    - reset() returns to the pre-start condition

    A goodbye schedules the conclusion on a timer. The timer carries the
    generation it was created in; reset(), start() and any new answer bump
    or cancel it, so a stale timer never changes the state.
    """

    def __init__(self, engine: Optional[FlowEngine] = None, session_id: str = "local"):
        self.engine = engine or create_flow_engine()
        self.session_id = session_id
        self.state = IkigaiState(session_id=session_id)
        self._generation = 0
        self._scheduled: Optional[asyncio.Task] = None

    @property
    def current_step(self) -> ConversationStep:
        return self.state.current_step

    @property
    def is_active(self) -> bool:
        return self.state.is_active

    @property
    def has_pending_conclusion(self) -> bool:
        return self._scheduled is not None and not self._scheduled.done()

    async def start(self) -> StepResult:
        """Reset all state, activate the flow and emit the introduction"""
        self._cancel_scheduled()
        self._generation += 1
        self.state = IkigaiState(session_id=self.session_id, is_active=True)

        context: Dict[str, Any] = {}
        step, messages = await self.engine.process_event(self.state, FlowEvent.START_SESSION, "", context)
        return self._build_result(step, messages, context)

    async def advance(self, utterance: str) -> StepResult:
        """
        Process one user answer.

        A turn that fails leaves no ResponseRecord behind.

        Raises:
            NotActiveError: If the flow has not been started or has concluded
            FlowError: If the transition could not be applied
        """
        if not self.state.is_active:
            raise NotActiveError(current_state=self.state.current_step.value)

        self._cancel_scheduled()
        utterance = utterance or ""
        # classification reads the prior answer, so record before it
        record = self.state.record_response(utterance)

        context: Dict[str, Any] = {}
        try:
            event = self.engine.classify_user_input(utterance, self.state, context)
            step, messages = await self.engine.process_event(self.state, event, utterance, context)
        except (FlowError, ValidationError):
            if self.state.responses and self.state.responses[-1] is record:
                self.state.responses.pop()
            raise
        result = self._build_result(step, messages, context)

        for effect in result.effects:
            if effect.type == EffectType.SCHEDULE_CONCLUSION:
                self._schedule_conclusion(float(effect.payload.get("delay", 0)))

        return result

    def reset(self):
        """Clear all state and cancel any pending timer"""
        self._cancel_scheduled()
        self._generation += 1
        self.state = IkigaiState(session_id=self.session_id)
        logger.info(f"Dialogue reset for session {self.session_id}")

    async def wait_for_scheduled(self) -> Optional[StepResult]:
        """
        Wait for the pending timed transition.

        Returns:
            The conclusion StepResult, or None if nothing was pending or the
            timer was cancelled
        """
        task = self._scheduled
        if task is None:
            return None

        await asyncio.wait({task})
        if task.cancelled():
            return None
        return task.result()

    # ===========================================
    # INTERNALS
    # ===========================================

    def _schedule_conclusion(self, delay: float):
        self._cancel_scheduled()
        self._scheduled = asyncio.create_task(self._run_scheduled_conclusion(delay, self._generation))
        logger.debug(f"Conclusion scheduled in {delay}s (generation {self._generation})")

    async def _run_scheduled_conclusion(self, delay: float, generation: int) -> Optional[StepResult]:
        await asyncio.sleep(delay)

        if generation != self._generation or not self.state.is_active:
            logger.debug(f"Dropping stale conclusion timer (generation {generation})")
            return None

        if not self.engine.can_transition(self.state.current_step, FlowEvent.TIMER_ELAPSED):
            logger.warning(f"Timer elapsed in {self.state.current_step.value}, no conclusion transition")
            return None

        context: Dict[str, Any] = {}
        step, messages = await self.engine.process_event(self.state, FlowEvent.TIMER_ELAPSED, "", context)
        return self._build_result(step, messages, context)

    def _cancel_scheduled(self):
        if self._scheduled is not None and not self._scheduled.done():
            self._scheduled.cancel()
            logger.debug("Pending conclusion timer cancelled")
        self._scheduled = None

    @staticmethod
    def _build_result(step: ConversationStep, messages: List[BobMessage], context: Dict[str, Any]) -> StepResult:
        return StepResult(
            outgoing_message="\n\n".join(message.text for message in messages),
            options=messages[-1].options if messages else [],
            terminal=bool(context.get('terminal', False)),
            step=step,
            effects=context.get('effects', [])
        )
