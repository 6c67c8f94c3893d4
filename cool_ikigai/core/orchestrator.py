# cool_ikigai/core/orchestrator.py
"""
Conversation sessions - one caller talking to Bob.

A ConversationSession owns its transcript, its dialogue state machine and
its speech sink. It routes each utterance either into the Ikigai flow or
into free chat, gates input while Bob is speaking and executes the side
effects the flow requests. A failed delivery or booking is logged and
told to the caller as a plain-text fallback; it never ends the session
or moves the dialogue.
"""

import asyncio
import re
import uuid
from typing import Any, Callable, Dict, List, Optional, Set
import logging

from cool_ikigai.agents.bob_agent import BobAgent
from cool_ikigai.core.exceptions import (
    DocumentRenderError,
    FlowError,
    ServiceError,
    SessionError,
    TurnTakingError,
    ValidationError
)
from cool_ikigai.core.flow_engine import FlowEngine
from cool_ikigai.core.flow_handlers import FlowHandlers
from cool_ikigai.core.prompt_manager import PromptManager, PromptType, get_prompt_manager
from cool_ikigai.core.state_machine import DialogueStateMachine
from cool_ikigai.models.flow_models import (
    Effect,
    EffectType,
    InboundPayload,
    Message,
    Sender,
    normalize_utterance
)
from cool_ikigai.services.delivery_service import DeliveryService
from cool_ikigai.services.document_service import DocumentService, RenderedDocument
from cool_ikigai.services.redis_service import RedisService
from cool_ikigai.services.speech_service import ClientPlaybackSink, SpeechSink
from cool_ikigai.services.validation_service import is_email, is_phone_number

logger = logging.getLogger(__name__)

EMAIL_IN_TEXT = re.compile(r"[^\s@,;<>]+@[^\s@,;<>]+\.[^\s@,;<>]+")


class ConversationSession:
    """
    One conversation with Bob.

    Turn-taking: while an utterance is being spoken, new input raises
    TurnTakingError. hang_up() stops speech at once and bumps the session
    generation so callbacks from the old call are ignored.
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        prompt_manager: Optional[PromptManager] = None,
        bob_agent: Optional[BobAgent] = None,
        flow_engine: Optional[FlowEngine] = None,
        sink: Optional[SpeechSink] = None,
        redis_service: Optional[RedisService] = None,
        delivery_service: Optional[DeliveryService] = None,
        document_service: Optional[DocumentService] = None
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.prompt_manager = prompt_manager or get_prompt_manager()
        self.bob_agent = bob_agent or BobAgent(prompt_manager=self.prompt_manager)

        engine = flow_engine or FlowEngine(FlowHandlers(
            bob_agent=self.bob_agent,
            prompt_manager=self.prompt_manager
        ))
        self.machine = DialogueStateMachine(engine, session_id=self.session_id)
        self.validation_service = engine.validation_service

        self.sink = sink or ClientPlaybackSink()
        self.redis_service = redis_service
        self.delivery_service = delivery_service or DeliveryService(prompt_manager=self.prompt_manager)
        self.document_service = document_service or DocumentService(prompt_manager=self.prompt_manager)

        self.transcript: List[Message] = []
        self.options: List[str] = []
        self.coaching_url: Optional[str] = None

        self._generation = 0
        self._pending_speech = 0
        self._speech_lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()

        logger.info(f"Conversation session {self.session_id} created")

    @property
    def is_speaking(self) -> bool:
        return self._pending_speech > 0

    @property
    def generation(self) -> int:
        return self._generation

    # ===========================================
    # INPUT
    # ===========================================

    async def start_ikigai(self) -> Message:
        """Start (or restart) the Ikigai exercise"""
        result = await self.machine.start()
        return self._emit(result.outgoing_message, result.options)

    async def handle_user_utterance(self, payload: InboundPayload) -> Optional[Message]:
        """
        Handle one user utterance.

        Args:
            payload: Plain text or an object with content/message/text

        Returns:
            Bob's reply, or None if the utterance was empty

        Raises:
            TurnTakingError: If Bob is still speaking
        """
        text = normalize_utterance(payload)
        if not text:
            logger.debug(f"Ignoring empty utterance for session {self.session_id}")
            return None

        if self.is_speaking:
            raise TurnTakingError(session_id=self.session_id)

        self.transcript.append(Message(text=text, sender=Sender.USER))

        if self.machine.is_active:
            try:
                result = await self.machine.advance(text)
            except FlowError as e:
                logger.error(f"Flow error in session {self.session_id}: {e}")
                return self._emit(self.prompt_manager.get_prompt(PromptType.BOB_CHAT_FALLBACK), self.options)

            reply = self._emit(result.outgoing_message, result.options)
            await self._execute_effects(result.effects)
            return reply

        reply_text = await self.bob_agent.chat(self.transcript)
        return self._emit(reply_text, [])

    def notify_playback_ended(self):
        """The client finished (or failed) playing the current utterance"""
        self.sink.playback_ended()

    async def hang_up(self):
        """
        End the call: stop speech, drop pending callbacks and timers,
        persist the transcript and reset the dialogue.
        """
        self.sink.stop()
        self._pending_speech = 0
        self._generation += 1

        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

        self.machine.reset()

        transcript = list(self.transcript)
        self.transcript = []
        self.options = []
        self.coaching_url = None

        if self.redis_service is not None and len(transcript) > 1:
            stored = await self.redis_service.append_call_history(transcript)
            if not stored:
                logger.debug(f"Call history of session {self.session_id} not persisted")

        logger.info(f"Session {self.session_id} hung up after {len(transcript)} messages")

    # ===========================================
    # SUMMARY DOCUMENT
    # ===========================================

    def render_summary(self) -> Optional[RenderedDocument]:
        """
        Render the composed Ikigai as a document.

        Returns:
            The document, or None (with an explanation added to the
            transcript) when there is no summary yet or rendering failed
        """
        summary = self.machine.state.ikigai_summary
        if summary is None:
            self._emit(self.prompt_manager.get_prompt(PromptType.BOB_DOCUMENT_NOT_READY), self.options, speak=False)
            return None

        try:
            return self.document_service.render(summary)
        except DocumentRenderError as e:
            logger.error(f"Document rendering failed for session {self.session_id}: {e}")
            self._emit(self.prompt_manager.get_prompt(PromptType.BOB_DOCUMENT_ERROR), self.options, speak=False)
            return None

    def get_info(self) -> Dict[str, Any]:
        state = self.machine.state
        return {
            "session_id": self.session_id,
            "is_active": state.is_active,
            "current_step": state.current_step.value,
            "is_speaking": self.is_speaking,
            "options": list(self.options),
            "has_summary": state.ikigai_summary is not None,
            "coaching_url": self.coaching_url,
            "transcript": [message.model_dump(mode="json") for message in self.transcript],
        }

    # ===========================================
    # OUTPUT
    # ===========================================

    def _emit(self, text: str, options: List[str], speak: bool = True) -> Message:
        message = Message(text=text, sender=Sender.SYSTEM)
        self.transcript.append(message)
        self.options = list(options)
        if speak:
            self._speak(text)
        return message

    def _speak(self, text: str):
        self._pending_speech += 1
        self._spawn(self._speak_task(text, self._generation))

    async def _speak_task(self, text: str, generation: int):
        try:
            async with self._speech_lock:
                if generation != self._generation:
                    return
                await self.sink.speak(text)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Speech output failed for session {self.session_id}: {e}")
        finally:
            if generation == self._generation and self._pending_speech > 0:
                self._pending_speech -= 1

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ===========================================
    # EFFECTS
    # ===========================================

    async def _execute_effects(self, effects: List[Effect]):
        for effect in effects:
            if effect.type == EffectType.SCHEDULE_CONCLUSION:
                self._spawn(self._relay_scheduled(self._generation))
            elif effect.type == EffectType.DELIVER_SUMMARY:
                await self._deliver_summary(effect.payload.get("contact", ""))
            elif effect.type == EffectType.SCHEDULE_COACHING:
                await self._schedule_coaching(effect.payload.get("raw", ""))
            else:
                logger.warning(f"Unknown effect: {effect.type}")

    async def _relay_scheduled(self, generation: int):
        """Publish the timed conclusion once the machine produces it"""
        result = await self.machine.wait_for_scheduled()
        if result is None or generation != self._generation:
            return
        self._emit(result.outgoing_message, result.options)

    async def _deliver_summary(self, contact: str):
        summary = self.machine.state.ikigai_summary
        if summary is None:
            logger.warning(f"No summary to deliver for session {self.session_id}")
            return

        validation = self.validation_service.validate_contact(contact)
        if not validation.valid:
            logger.warning(f"Summary not sent: {validation.message}")
            self._emit(self.prompt_manager.get_prompt(PromptType.BOB_CONTACT_INVALID, contact=contact), self.options)
            return

        try:
            if validation.details["channel"] == "email":
                await self.delivery_service.send_by_email(contact, summary.as_ikigai_data())
            else:
                await self.delivery_service.send_by_whatsapp(contact, summary.as_ikigai_data())
        except (ValidationError, ServiceError) as e:
            logger.error(f"Summary delivery failed for session {self.session_id}: {e}")
            self._emit(self.prompt_manager.get_prompt(PromptType.BOB_DELIVERY_FAILED, contact=contact), self.options)

    async def _schedule_coaching(self, raw: str):
        match = EMAIL_IN_TEXT.search(raw)
        contact = self.machine.state.contact_info
        if match:
            email = match.group(0)
        elif contact and is_email(contact):
            email = contact
        else:
            logger.warning(f"No email in coaching request for session {self.session_id}")
            self._emit(self.prompt_manager.get_prompt(PromptType.BOB_COACHING_FAILED), self.options)
            return

        name = raw.replace(email, " ").strip(" ,;:-\n\t")
        phone = contact if contact and is_phone_number(contact) else None

        try:
            booking = await self.delivery_service.schedule_coaching(name, email, phone)
            self.coaching_url = booking.get("schedulingUrl")
        except (ValidationError, ServiceError) as e:
            logger.error(f"Coaching booking failed for session {self.session_id}: {e}")
            self._emit(self.prompt_manager.get_prompt(PromptType.BOB_COACHING_FAILED), self.options)


class SessionStore:
    """In-memory registry of live conversation sessions"""

    def __init__(self, session_factory: Optional[Callable[[str], ConversationSession]] = None):
        self.sessions: Dict[str, ConversationSession] = {}
        self._session_factory = session_factory or (lambda session_id: ConversationSession(session_id=session_id))

    def create(self) -> ConversationSession:
        session_id = uuid.uuid4().hex
        session = self._session_factory(session_id)
        self.sessions[session_id] = session
        return session

    def get(self, session_id: str) -> ConversationSession:
        """
        Raises:
            SessionError: If the session does not exist
        """
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionError("Session not found", session_id=session_id)
        return session

    async def remove(self, session_id: str):
        session = self.get(session_id)
        await session.hang_up()
        del self.sessions[session_id]

    async def shutdown(self):
        for session_id in list(self.sessions):
            await self.remove(session_id)
