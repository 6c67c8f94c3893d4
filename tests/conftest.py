# tests/conftest.py
"""
Shared fixtures for the Cool Ikigai test suite.

The environment is pinned before any cool_ikigai module is imported, so the
settings singleton never sees real API keys: no network calls, no Redis,
rate limiting off and short dialogue timers.
"""

import os

for _var in ("OPENAI_API_KEY", "OPENAI_APIKEY", "ELEVENLABS_API_KEY", "REDIS_URL"):
    os.environ.pop(_var, None)

os.environ["IKIGAI_API_KEY"] = "test-api-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["GOODBYE_DELAY_SECONDS"] = "0.05"
os.environ["SPEECH_PLAYBACK_TIMEOUT"] = "1"

import pytest
from typing import List
from unittest.mock import AsyncMock, Mock

from cool_ikigai.agents.bob_agent import BobAgent
from cool_ikigai.core.flow_engine import FlowEngine
from cool_ikigai.core.flow_handlers import FlowHandlers
from cool_ikigai.core.orchestrator import ConversationSession
from cool_ikigai.core.prompt_manager import get_prompt_manager
from cool_ikigai.core.state_machine import DialogueStateMachine
from cool_ikigai.services.speech_service import SpeechSink


# Answers that pass every gate of their domain
PASSIONS_ANSWER = "J'adore la musique et la peinture"
TALENTS_ANSWER = "Je suis doué pour la musique et le dessin"
WORLD_NEEDS_ANSWER = "Le monde a besoin de plus de solidarité"
MONETIZATION_ANSWER = "Je pourrais être payé pour enseigner la musique"


class RecordingSink(SpeechSink):
    """Speech sink that returns at once and remembers what was said"""

    def __init__(self):
        self.spoken: List[str] = []
        self.stopped = 0
        self.ended = 0

    async def speak(self, text: str) -> None:
        self.spoken.append(text)

    def stop(self) -> None:
        self.stopped += 1

    def playback_ended(self) -> None:
        self.ended += 1


@pytest.fixture
def prompt_manager():
    return get_prompt_manager()


@pytest.fixture
def bob_agent(prompt_manager):
    return BobAgent(prompt_manager=prompt_manager)


@pytest.fixture
def flow_handlers(bob_agent, prompt_manager):
    return FlowHandlers(bob_agent=bob_agent, prompt_manager=prompt_manager, goodbye_delay=0.05)


@pytest.fixture
def flow_engine(flow_handlers):
    return FlowEngine(flow_handlers)


@pytest.fixture
def machine(flow_engine):
    return DialogueStateMachine(flow_engine, session_id="test-session")


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def mock_redis_service():
    mock = Mock()
    mock.append_call_history = AsyncMock(return_value=True)
    mock.save_ikigai_result = AsyncMock(return_value="1700000000000")
    return mock


@pytest.fixture
def mock_delivery_service():
    mock = Mock()
    mock.send_by_email = AsyncMock(return_value={"success": True, "message": "Email sent successfully"})
    mock.send_by_whatsapp = AsyncMock(return_value={"success": True, "message": "WhatsApp message sent successfully"})
    mock.schedule_coaching = AsyncMock(return_value={
        "success": True,
        "message": "Coaching call scheduled successfully",
        "schedulingUrl": "https://calendly.com/ikigai-coaching/session?name=Camille&email=camille%40example.com"
    })
    return mock


@pytest.fixture
def session(bob_agent, prompt_manager, flow_engine, recording_sink, mock_redis_service, mock_delivery_service):
    """Conversation session with an instant sink and mocked collaborators"""
    return ConversationSession(
        session_id="test-session",
        prompt_manager=prompt_manager,
        bob_agent=bob_agent,
        flow_engine=flow_engine,
        sink=recording_sink,
        redis_service=mock_redis_service,
        delivery_service=mock_delivery_service
    )


@pytest.fixture
def ikigai_answers():
    return [PASSIONS_ANSWER, TALENTS_ANSWER, WORLD_NEEDS_ANSWER, MONETIZATION_ANSWER]


@pytest.fixture
def run_to_summary(ikigai_answers):
    """Coroutine function driving a started machine through all four domains"""
    async def run(machine: DialogueStateMachine):
        await machine.advance("Bonjour")
        await machine.advance("oui")
        result = None
        for answer in ikigai_answers:
            await machine.advance(answer)
            result = await machine.advance("oui")
        return result
    return run
