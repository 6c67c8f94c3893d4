# tests/core/test_state_machine.py
"""
Tests for the DialogueStateMachine: start/advance/reset, complete runs and
the cancellable goodbye timer.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from cool_ikigai.core.exceptions import FlowError, NotActiveError
from cool_ikigai.core.prompt_manager import PromptType
from cool_ikigai.models.flow_models import ConversationStep, Domain, EffectType


async def advance_to(machine, step: ConversationStep):
    """Start the machine and walk it to the first passions question"""
    await machine.start()
    await machine.advance("Bonjour")
    if step == ConversationStep.READY_CHECK:
        return
    await machine.advance("oui")
    assert machine.current_step == step


@pytest.mark.unit
class TestStartAndAdvance:

    async def test_start_emits_introduction(self, machine, prompt_manager):
        result = await machine.start()

        assert result.outgoing_message == prompt_manager.get_prompt(PromptType.BOB_INTRODUCTION)
        assert result.options == ["Commencer"]
        assert result.step == ConversationStep.INTRODUCTION
        assert machine.is_active
        assert not result.terminal

    async def test_introduction_advances_on_any_input(self, machine, prompt_manager):
        await machine.start()

        result = await machine.advance("n'importe quoi")

        assert machine.current_step == ConversationStep.READY_CHECK
        assert result.outgoing_message == prompt_manager.get_prompt(PromptType.BOB_READY_QUESTION)
        assert result.options == ["Oui", "Non", "Pas sûr"]

    async def test_advance_before_start(self, machine):
        with pytest.raises(NotActiveError):
            await machine.advance("Bonjour")

    async def test_responses_are_recorded_with_their_step(self, machine):
        await machine.start()
        await machine.advance("Bonjour")
        await machine.advance("oui")

        assert [(r.step, r.raw_text) for r in machine.state.responses] == [
            (ConversationStep.INTRODUCTION, "Bonjour"),
            (ConversationStep.READY_CHECK, "oui"),
        ]

    async def test_empty_utterance_is_reprompted(self, machine):
        await advance_to(machine, ConversationStep.PASSIONS)

        await machine.advance("")

        assert machine.current_step == ConversationStep.PASSIONS

    async def test_start_resets_previous_run(self, machine):
        await advance_to(machine, ConversationStep.PASSIONS)
        await machine.advance("J'adore la musique et la peinture")

        await machine.start()

        assert machine.current_step == ConversationStep.INTRODUCTION
        assert machine.state.responses == []
        assert machine.state.domain_summaries == {}

    async def test_failed_turn_is_not_recorded(self, machine, bob_agent, monkeypatch):
        await advance_to(machine, ConversationStep.READY_CHECK)
        recorded = list(machine.state.responses)
        monkeypatch.setattr(bob_agent, "respond", AsyncMock(side_effect=RuntimeError("agent down")))

        with pytest.raises(FlowError):
            await machine.advance("oui")

        assert machine.state.responses == recorded
        assert machine.current_step == ConversationStep.READY_CHECK


@pytest.mark.unit
class TestDomainScenarios:

    async def test_accepted_passions(self, machine):
        await advance_to(machine, ConversationStep.PASSIONS)

        result = await machine.advance("j'aime la musique et le dessin")

        assert result.step == ConversationStep.VALIDATE_PASSIONS
        assert machine.state.get_summary(Domain.PASSIONS)
        assert result.options == ["Oui", "Non"]

    async def test_unknown_passions(self, machine, prompt_manager):
        await advance_to(machine, ConversationStep.PASSIONS)

        result = await machine.advance("je ne sais pas")

        assert machine.current_step == ConversationStep.PASSIONS
        assert result.outgoing_message == prompt_manager.get_prompt(PromptType.BOB_PASSIONS_UNKNOWN)
        assert result.outgoing_message != prompt_manager.get_prompt(PromptType.BOB_PASSIONS_ELABORATE)

    @pytest.mark.parametrize("answer", ["je ne sais pas", "le sport", "?? ?? ?? ??"])
    async def test_rejected_answer_stays_twice(self, machine, answer):
        await advance_to(machine, ConversationStep.PASSIONS)

        await machine.advance(answer)
        assert machine.current_step == ConversationStep.PASSIONS
        await machine.advance(answer)
        assert machine.current_step == ConversationStep.PASSIONS

    async def test_unclear_confirmation_stays_twice(self, machine):
        await advance_to(machine, ConversationStep.PASSIONS)
        await machine.advance("J'adore la musique et la peinture")

        for _ in range(2):
            result = await machine.advance("peut-être")
            assert machine.current_step == ConversationStep.VALIDATE_PASSIONS
            assert result.options == ["Oui", "Non"]

    async def test_rejected_summary_asks_again(self, machine):
        await advance_to(machine, ConversationStep.PASSIONS)
        await machine.advance("J'adore la musique et la peinture")

        await machine.advance("non")
        assert machine.current_step == ConversationStep.PASSIONS

        await machine.advance("J'adore le jardinage")
        assert machine.state.get_summary(Domain.PASSIONS) == "le jardinage"

    async def test_restart_mid_flow(self, machine, prompt_manager):
        await advance_to(machine, ConversationStep.PASSIONS)
        await machine.advance("J'adore la musique et la peinture")

        result = await machine.advance("recommencer")

        assert machine.current_step == ConversationStep.INTRODUCTION
        assert machine.is_active
        assert machine.state.responses == []
        assert result.outgoing_message.startswith(prompt_manager.get_prompt(PromptType.BOB_RESTART))


@pytest.mark.integration
class TestCompleteRun:

    async def test_round_trip_reaches_summary(self, machine, run_to_summary, ikigai_answers):
        await machine.start()

        result = await run_to_summary(machine)

        assert machine.current_step == ConversationStep.SUMMARY
        assert machine.state.has_all_summaries()
        assert result.options == ["Oui", "Non"]

        narrative = machine.state.ikigai_summary.narrative
        for domain in Domain:
            assert machine.state.get_summary(domain) in narrative
        assert narrative in result.outgoing_message

    async def test_talents_connection_is_mentioned(self, machine, ikigai_answers):
        await advance_to(machine, ConversationStep.PASSIONS)
        await machine.advance(ikigai_answers[0])
        await machine.advance("oui")
        await machine.advance(ikigai_answers[1])

        result = await machine.advance("oui")

        assert "lien entre vos passions et vos talents autour de : musique" in result.outgoing_message
        assert machine.current_step == ConversationStep.WORLD_NEEDS

    async def test_delivery_and_coaching(self, machine, run_to_summary):
        await machine.start()
        await run_to_summary(machine)

        await machine.advance("oui")
        assert machine.current_step == ConversationStep.EMAIL_REQUEST

        await machine.advance("Continuer")
        assert machine.current_step == ConversationStep.CONTACT_ENTRY

        result = await machine.advance("camille@example.com")
        assert machine.current_step == ConversationStep.COACHING
        assert machine.state.contact_info == "camille@example.com"
        assert [e.type for e in result.effects] == [EffectType.DELIVER_SUMMARY]

        await machine.advance("oui")
        assert machine.current_step == ConversationStep.COACHING_SCHEDULE

        result = await machine.advance("Camille Martin camille@example.com")
        assert result.terminal
        assert result.step == ConversationStep.CONCLUSION
        assert [e.type for e in result.effects] == [EffectType.SCHEDULE_COACHING]
        assert not machine.is_active

    async def test_declined_delivery_goes_to_coaching(self, machine, run_to_summary):
        await machine.start()
        await run_to_summary(machine)

        await machine.advance("non")
        await machine.advance("Continuer")

        assert machine.current_step == ConversationStep.COACHING

    async def test_unsure_about_coaching(self, machine, run_to_summary):
        await machine.start()
        await run_to_summary(machine)
        await machine.advance("non")
        await machine.advance("Continuer")

        await machine.advance("pas sûr")
        assert machine.current_step == ConversationStep.COACHING_CONFIRMATION

        result = await machine.advance("Continuer")
        assert result.terminal
        assert not machine.is_active

    async def test_advance_after_conclusion(self, machine, run_to_summary):
        await machine.start()
        await run_to_summary(machine)
        await machine.advance("non")
        await machine.advance("Continuer")
        await machine.advance("non")

        with pytest.raises(NotActiveError):
            await machine.advance("Bonjour")


@pytest.mark.unit
class TestGoodbyeTimer:

    async def test_not_ready_concludes_after_delay(self, machine, prompt_manager):
        await advance_to(machine, ConversationStep.READY_CHECK)

        result = await machine.advance("non")

        assert result.outgoing_message == prompt_manager.get_prompt(PromptType.BOB_NOT_READY_GOODBYE)
        assert machine.current_step == ConversationStep.READY_CHECK
        assert machine.is_active
        assert machine.has_pending_conclusion

        conclusion = await machine.wait_for_scheduled()

        assert conclusion.outgoing_message == prompt_manager.get_prompt(PromptType.BOB_CONCLUSION)
        assert conclusion.terminal
        assert machine.current_step == ConversationStep.CONCLUSION
        assert not machine.is_active

    async def test_reset_cancels_timer(self, machine):
        await advance_to(machine, ConversationStep.READY_CHECK)
        await machine.advance("non")

        machine.reset()
        await asyncio.sleep(0.1)

        assert machine.current_step == ConversationStep.INTRODUCTION
        assert not machine.is_active
        assert not machine.has_pending_conclusion
        assert await machine.wait_for_scheduled() is None

    async def test_new_answer_cancels_timer(self, machine):
        await advance_to(machine, ConversationStep.READY_CHECK)
        await machine.advance("non")

        await machine.advance("oui")
        await asyncio.sleep(0.1)

        assert machine.current_step == ConversationStep.PASSIONS
        assert machine.is_active

    async def test_restart_cancels_timer(self, machine):
        await advance_to(machine, ConversationStep.READY_CHECK)
        await machine.advance("non")

        await machine.start()
        await asyncio.sleep(0.1)

        assert machine.current_step == ConversationStep.INTRODUCTION
        assert machine.is_active
