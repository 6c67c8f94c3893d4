# tests/core/test_orchestrator.py
"""
Tests for ConversationSession and SessionStore: transcript handling,
turn-taking, free chat, hang-up and the side effects of the Ikigai flow.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, Mock

from cool_ikigai.core.exceptions import FlowError, ServiceError, SessionError, TurnTakingError, ValidationError
from cool_ikigai.core.orchestrator import ConversationSession, SessionStore
from cool_ikigai.core.prompt_manager import PromptType
from cool_ikigai.models.flow_models import ConversationStep, Effect, EffectType, Sender, TextPayload
from cool_ikigai.services.speech_service import SpeechSink


async def settle(session: ConversationSession):
    """Wait until every speech and timer task of the session is done"""
    while session._tasks:
        await asyncio.gather(*list(session._tasks), return_exceptions=True)


async def say(session: ConversationSession, text):
    reply = await session.handle_user_utterance(text)
    await settle(session)
    return reply


async def run_to_summary(session: ConversationSession, answers):
    await session.start_ikigai()
    await settle(session)
    await say(session, "Bonjour")
    await say(session, "oui")
    for answer in answers:
        await say(session, answer)
        await say(session, "oui")


class FailingSink(SpeechSink):
    async def speak(self, text: str) -> None:
        raise RuntimeError("audio device lost")

    def stop(self) -> None:
        pass

    def playback_ended(self) -> None:
        pass


@pytest.mark.unit
class TestTranscript:

    async def test_start_ikigai(self, session, recording_sink, prompt_manager):
        message = await session.start_ikigai()
        await settle(session)

        introduction = prompt_manager.get_prompt(PromptType.BOB_INTRODUCTION)
        assert message.text == introduction
        assert message.sender == Sender.SYSTEM
        assert session.options == ["Commencer"]
        assert recording_sink.spoken == [introduction]

    async def test_utterance_appends_user_then_bob(self, session, prompt_manager):
        await session.start_ikigai()
        await settle(session)

        reply = await say(session, "Bonjour")

        assert [(m.sender, m.text) for m in session.transcript[-2:]] == [
            (Sender.USER, "Bonjour"),
            (Sender.SYSTEM, prompt_manager.get_prompt(PromptType.BOB_READY_QUESTION)),
        ]
        assert reply is session.transcript[-1]
        assert session.options == ["Oui", "Non", "Pas sûr"]

    @pytest.mark.parametrize("payload", ["", "   ", TextPayload(content="  "), TextPayload()])
    async def test_empty_payload_is_ignored(self, session, payload):
        assert await session.handle_user_utterance(payload) is None
        assert session.transcript == []

    async def test_object_payload(self, session):
        await session.start_ikigai()
        await settle(session)

        await say(session, TextPayload(message="  Bonjour  "))

        assert session.transcript[1].text == "Bonjour"
        assert session.machine.current_step == ConversationStep.READY_CHECK

    async def test_get_info(self, session):
        await session.start_ikigai()
        await settle(session)

        info = session.get_info()

        assert info["session_id"] == "test-session"
        assert info["is_active"] is True
        assert info["current_step"] == "introduction"
        assert info["is_speaking"] is False
        assert info["has_summary"] is False
        assert info["transcript"][0]["sender"] == "system"


@pytest.mark.unit
class TestTurnTaking:

    async def test_input_while_speaking_is_rejected(self, session):
        await session.start_ikigai()

        assert session.is_speaking
        with pytest.raises(TurnTakingError):
            await session.handle_user_utterance("Bonjour")

        await settle(session)
        assert not session.is_speaking

    async def test_speech_keeps_emission_order(self, session, recording_sink, prompt_manager):
        await session.start_ikigai()
        await settle(session)
        await say(session, "Bonjour")
        await say(session, "oui")

        assert recording_sink.spoken == [
            prompt_manager.get_prompt(PromptType.BOB_INTRODUCTION),
            prompt_manager.get_prompt(PromptType.BOB_READY_QUESTION),
            prompt_manager.get_prompt(PromptType.BOB_PASSIONS_QUESTION),
        ]

    async def test_sink_failure_is_not_raised(self, bob_agent, flow_engine):
        session = ConversationSession(bob_agent=bob_agent, flow_engine=flow_engine, sink=FailingSink())

        await session.start_ikigai()
        await settle(session)

        assert not session.is_speaking
        assert len(session.transcript) == 1

    async def test_playback_ended_reaches_sink(self, session, recording_sink):
        session.notify_playback_ended()

        assert recording_sink.ended == 1


@pytest.mark.unit
class TestFreeChat:

    async def test_fallback_without_language_model(self, session, prompt_manager):
        reply = await say(session, "Salut Bob, ça va ?")

        assert reply.text == prompt_manager.get_prompt(PromptType.BOB_CHAT_FALLBACK)
        assert session.options == []
        assert not session.machine.is_active

    async def test_chat_uses_transcript(self, session):
        session.bob_agent.gpt_service = Mock()
        session.bob_agent.gpt_service.get_answer = AsyncMock(return_value="Très bien, et vous ?")

        reply = await say(session, "Salut Bob, ça va ?")

        assert reply.text == "Très bien, et vous ?"
        transcript = session.bob_agent.gpt_service.get_answer.call_args[0][0]
        assert transcript[-1].text == "Salut Bob, ça va ?"

    async def test_flow_error_yields_fallback(self, session, prompt_manager):
        await session.start_ikigai()
        await settle(session)
        session.machine.advance = AsyncMock(side_effect=FlowError("Invalid transition", current_state="introduction"))

        reply = await say(session, "Bonjour")

        assert reply.text == prompt_manager.get_prompt(PromptType.BOB_CHAT_FALLBACK)
        assert session.options == ["Commencer"]


@pytest.mark.unit
class TestHangUp:

    async def test_hang_up_persists_and_resets(self, session, recording_sink, mock_redis_service):
        await session.start_ikigai()
        await settle(session)
        await say(session, "Bonjour")

        await session.hang_up()

        assert recording_sink.stopped == 1
        assert session.transcript == []
        assert session.options == []
        assert not session.is_speaking
        assert not session.machine.is_active
        persisted = mock_redis_service.append_call_history.call_args[0][0]
        assert [m.text for m in persisted][1] == "Bonjour"

    async def test_single_message_is_not_persisted(self, session, mock_redis_service):
        await session.start_ikigai()
        await settle(session)

        await session.hang_up()

        mock_redis_service.append_call_history.assert_not_called()

    async def test_hang_up_while_speaking(self, session, recording_sink):
        await session.start_ikigai()

        await session.hang_up()
        await asyncio.sleep(0.01)

        assert not session.is_speaking
        assert recording_sink.spoken == []

    async def test_hang_up_cancels_goodbye_timer(self, session):
        await session.start_ikigai()
        await settle(session)
        await say(session, "Bonjour")
        await session.handle_user_utterance("non")

        await session.hang_up()
        await asyncio.sleep(0.1)

        assert session.transcript == []
        assert session.machine.current_step == ConversationStep.INTRODUCTION

    async def test_goodbye_is_followed_by_conclusion(self, session, prompt_manager):
        await session.start_ikigai()
        await settle(session)
        await say(session, "Bonjour")

        await say(session, "non")

        assert session.transcript[-1].text == prompt_manager.get_prompt(PromptType.BOB_CONCLUSION)
        assert session.transcript[-2].text == prompt_manager.get_prompt(PromptType.BOB_NOT_READY_GOODBYE)
        assert not session.machine.is_active


@pytest.mark.integration
class TestFlowEffects:

    async def test_email_delivery(self, session, ikigai_answers, mock_delivery_service):
        await run_to_summary(session, ikigai_answers)
        await say(session, "oui")
        await say(session, "Continuer")

        await say(session, "camille@example.com")

        summary = session.machine.state.ikigai_summary
        mock_delivery_service.send_by_email.assert_awaited_once_with("camille@example.com", summary.as_ikigai_data())
        mock_delivery_service.send_by_whatsapp.assert_not_called()

    async def test_whatsapp_delivery(self, session, ikigai_answers, mock_delivery_service):
        await run_to_summary(session, ikigai_answers)
        await say(session, "oui")
        await say(session, "Continuer")

        await say(session, "+33 6 12 34 56 78")

        assert mock_delivery_service.send_by_whatsapp.call_args[0][0] == "+33 6 12 34 56 78"
        mock_delivery_service.send_by_email.assert_not_called()

    async def test_invalid_contact_is_not_sent(self, session, ikigai_answers, mock_delivery_service, prompt_manager):
        await run_to_summary(session, ikigai_answers)
        await say(session, "oui")
        await say(session, "Continuer")

        reply = await say(session, "demain peut-être")

        mock_delivery_service.send_by_email.assert_not_called()
        mock_delivery_service.send_by_whatsapp.assert_not_called()
        assert prompt_manager.get_prompt(PromptType.BOB_CONTACT_INVALID, contact="demain peut-être") in reply.text
        assert "sera envoyé" not in reply.text
        assert session.machine.state.contact_info is None
        assert session.machine.current_step == ConversationStep.COACHING

    async def test_unusable_contact_effect(self, session, ikigai_answers, mock_delivery_service, prompt_manager):
        await run_to_summary(session, ikigai_answers)
        step = session.machine.current_step

        await session._execute_effects([Effect(type=EffectType.DELIVER_SUMMARY, payload={"contact": "demain"})])
        await settle(session)

        mock_delivery_service.send_by_email.assert_not_called()
        assert session.transcript[-1].text == prompt_manager.get_prompt(PromptType.BOB_CONTACT_INVALID, contact="demain")
        assert session.machine.current_step == step

    @pytest.mark.parametrize("error", [
        ServiceError("SMTP down", service_name="Delivery"),
        ValidationError("Invalid email format", field="email"),
    ])
    async def test_delivery_failure_is_told(self, session, ikigai_answers, mock_delivery_service, prompt_manager, error):
        mock_delivery_service.send_by_email.side_effect = error
        await run_to_summary(session, ikigai_answers)
        await say(session, "oui")
        await say(session, "Continuer")

        reply = await say(session, "camille@example.com")

        failed = prompt_manager.get_prompt(PromptType.BOB_DELIVERY_FAILED, contact="camille@example.com")
        assert reply is not None
        assert session.transcript[-1].text == failed
        assert session.transcript[-1].sender == Sender.SYSTEM
        assert session.options == ["Oui", "Non", "Pas sûr"]
        assert session.machine.current_step == ConversationStep.COACHING

    async def test_successful_delivery_has_no_fallback(self, session, ikigai_answers, prompt_manager):
        await run_to_summary(session, ikigai_answers)
        await say(session, "oui")
        await say(session, "Continuer")

        reply = await say(session, "camille@example.com")

        assert session.transcript[-1] is reply
        assert "Désolé" not in reply.text

    async def test_coaching_booking(self, session, ikigai_answers, mock_delivery_service):
        await run_to_summary(session, ikigai_answers)
        await say(session, "non")
        await say(session, "Continuer")
        await say(session, "oui")

        await say(session, "Camille Martin camille@example.com")

        mock_delivery_service.schedule_coaching.assert_awaited_once_with("Camille Martin", "camille@example.com", None)
        assert session.coaching_url.startswith("https://calendly.com/")
        assert not session.machine.is_active

    async def test_coaching_uses_whatsapp_number(self, session, ikigai_answers, mock_delivery_service):
        await run_to_summary(session, ikigai_answers)
        await say(session, "oui")
        await say(session, "Continuer")
        await say(session, "+33 6 12 34 56 78")
        await say(session, "oui")

        await say(session, "Camille Martin camille@example.com")

        mock_delivery_service.schedule_coaching.assert_awaited_once_with(
            "Camille Martin", "camille@example.com", "+33 6 12 34 56 78"
        )

    async def test_coaching_without_email(self, session, ikigai_answers, mock_delivery_service, prompt_manager):
        await run_to_summary(session, ikigai_answers)
        await say(session, "non")
        await say(session, "Continuer")
        await say(session, "oui")

        await say(session, "Camille Martin")

        mock_delivery_service.schedule_coaching.assert_not_called()
        assert session.coaching_url is None
        assert session.transcript[-1].text == prompt_manager.get_prompt(PromptType.BOB_COACHING_FAILED)

    async def test_coaching_failure_is_told(self, session, ikigai_answers, mock_delivery_service, prompt_manager):
        mock_delivery_service.schedule_coaching.side_effect = ServiceError("calendar down", service_name="Delivery")
        await run_to_summary(session, ikigai_answers)
        await say(session, "non")
        await say(session, "Continuer")
        await say(session, "oui")

        await say(session, "Camille Martin camille@example.com")

        assert session.coaching_url is None
        assert [m.text for m in session.transcript[-2:]] == [
            prompt_manager.get_prompt(PromptType.BOB_CONCLUSION),
            prompt_manager.get_prompt(PromptType.BOB_COACHING_FAILED),
        ]
        assert not session.machine.is_active


@pytest.mark.unit
class TestSummaryDocument:

    async def test_not_ready(self, session, recording_sink, prompt_manager):
        assert session.render_summary() is None

        not_ready = prompt_manager.get_prompt(PromptType.BOB_DOCUMENT_NOT_READY)
        assert session.transcript[-1].text == not_ready
        assert not_ready not in recording_sink.spoken

    async def test_rendered_after_summary(self, session, ikigai_answers):
        await run_to_summary(session, ikigai_answers)

        document = session.render_summary()

        assert document.filename.startswith("ikigai-")
        assert "enseigner la musique" in document.content.decode("utf-8")
        assert session.get_info()["has_summary"] is True


@pytest.mark.unit
class TestSessionStore:

    def test_create_and_get(self):
        store = SessionStore(lambda session_id: Mock(session_id=session_id))

        session = store.create()

        assert store.get(session.session_id) is session
        assert len(store.sessions) == 1

    def test_unknown_session(self):
        with pytest.raises(SessionError) as exc_info:
            SessionStore().get("missing")

        assert exc_info.value.session_id == "missing"

    async def test_remove_hangs_up(self):
        store = SessionStore(lambda session_id: Mock(session_id=session_id, hang_up=AsyncMock()))
        session = store.create()

        await store.remove(session.session_id)

        session.hang_up.assert_awaited_once()
        assert store.sessions == {}

    async def test_shutdown(self):
        store = SessionStore(lambda session_id: Mock(session_id=session_id, hang_up=AsyncMock()))
        store.create()
        store.create()

        await store.shutdown()

        assert store.sessions == {}
