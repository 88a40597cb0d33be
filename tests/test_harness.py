import asyncio
import json
import pytest
from unittest.mock import AsyncMock, MagicMock
from agent_relay.errors import NoStepsError, TransportError, UpstreamLogicError
from agent_relay.harness import (
    EMPTY_OUTPUT_MARKER,
    OPERATIONS_SYSTEM_PROMPT,
    PLANNER_SYSTEM_PROMPT,
    VERIFY_COMMAND,
    Relay,
)
from agent_relay.models import Provider, Settings


def _providers(plan: str = "", coder="code out", planner_steps="reasoning out", command_result=None):
    providers = MagicMock()
    providers.call_planner = AsyncMock(side_effect=[plan] + ([planner_steps] * 10 if isinstance(planner_steps, str) else planner_steps))
    providers.call_coder = AsyncMock(return_value=coder) if isinstance(coder, str) else AsyncMock(side_effect=coder)
    providers.run_command = AsyncMock(return_value=command_result or {"ok": True})
    return providers


def _run(relay: Relay, goal: str):
    return asyncio.run(relay.run(goal))

# ---------------------------------------------------------------------------
# Planning phase
# ---------------------------------------------------------------------------

def test_planner_receives_system_prompt_and_goal():
    providers = _providers(plan="- Summarize notes")
    _run(Relay(Settings(), providers), "Tidy the notes")

    messages = providers.call_planner.await_args_list[0].args[0]
    assert messages == [
        {"role": "system", "content": PLANNER_SYSTEM_PROMPT},
        {"role": "user", "content": "Goal: Tidy the notes"},
    ]

def test_planner_failure_propagates_unchanged():
    providers = _providers()
    providers.call_planner = AsyncMock(side_effect=TransportError("down", status_code=500))

    with pytest.raises(TransportError, match="down"):
        _run(Relay(Settings(), providers), "anything")
    providers.call_coder.assert_not_awaited()

def test_empty_plan_raises_no_steps_before_any_step_call():
    providers = _providers(plan="")

    with pytest.raises(NoStepsError, match="no actionable steps"):
        _run(Relay(Settings(), providers), "Write a sort function")

    assert providers.call_planner.await_count == 1
    providers.call_coder.assert_not_awaited()
    providers.run_command.assert_not_awaited()

def test_steps_are_capped_at_max_steps():
    plan = "\n".join(f"{i}. Summarize part {i}" for i in range(1, 8))
    providers = _providers(plan=plan)

    result = _run(Relay(Settings(max_steps=3), providers), "goal")
    assert [r.step for r in result.results] == ["Summarize part 1", "Summarize part 2", "Summarize part 3"]
    assert providers.call_planner.await_count == 4

# ---------------------------------------------------------------------------
# Execution phase
# ---------------------------------------------------------------------------

def test_sort_function_scenario_routes_every_step_to_coder():
    plan = "1. Write tests\n2. Implement function\n3. Refactor for performance"
    providers = _providers(plan=plan, coder=["tests", "impl", "faster"])

    result = _run(Relay(Settings(), providers), "Write a sort function")

    assert result.plan == plan
    assert result.goal == "Write a sort function"
    assert [(r.step, r.provider, r.output) for r in result.results] == [
        ("Write tests", Provider.CODE, "tests"),
        ("Implement function", Provider.CODE, "impl"),
        ("Refactor for performance", Provider.CODE, "faster"),
    ]
    prompts = [call.args[0] for call in providers.call_coder.await_args_list]
    assert prompts == [
        "Execute this step:\nWrite tests",
        "Execute this step:\nImplement function",
        "Execute this step:\nRefactor for performance",
    ]
    providers.run_command.assert_not_awaited()

def test_reasoning_steps_go_to_planner_with_operations_prompt():
    providers = _providers(plan="- Summarize stakeholder feedback", planner_steps=["summary"])

    result = _run(Relay(Settings(), providers), "goal")

    assert result.results[0].provider is Provider.REASONING
    assert result.results[0].output == "summary"
    messages = providers.call_planner.await_args_list[1].args[0]
    assert messages == [
        {"role": "system", "content": OPERATIONS_SYSTEM_PROMPT},
        {"role": "user", "content": "Execute this step:\nSummarize stakeholder feedback"},
    ]
    providers.call_coder.assert_not_awaited()

def test_configured_keywords_drive_routing():
    providers = _providers(plan="- Summarize stakeholder feedback")

    result = _run(Relay(Settings(code_keywords=("stakeholder",)), providers), "goal")
    assert result.results[0].provider is Provider.CODE

@pytest.mark.parametrize("blank", ["", "   "])
def test_blank_output_is_replaced_with_marker(blank):
    providers = _providers(plan="1. Fix the bug", coder=blank)

    result = _run(Relay(Settings(), providers), "goal")
    assert result.results[0].output == EMPTY_OUTPUT_MARKER

def test_step_failure_aborts_run_with_upstream_error():
    plan = "1. Write code\n2. Test code\n3. Ship code"
    boom = TransportError("exhausted", status_code=502, payload={"error": "bad gateway"})
    providers = _providers(plan=plan, coder=["ok", boom, "never"])

    with pytest.raises(UpstreamLogicError) as info:
        _run(Relay(Settings(), providers), "goal")

    assert info.value.payload == {"error": "bad gateway"}
    assert info.value.__cause__ is boom
    assert providers.call_coder.await_count == 2

def test_steps_run_strictly_in_order():
    order = []

    async def coder(prompt):
        order.append(("start", prompt))
        await asyncio.sleep(0)
        order.append(("end", prompt))
        return "x"

    providers = _providers(plan="1. code a\n2. code b")
    providers.call_coder = AsyncMock(side_effect=coder)
    _run(Relay(Settings(), providers), "goal")

    assert [kind for kind, _ in order] == ["start", "end", "start", "end"]

# ---------------------------------------------------------------------------
# Verification phase
# ---------------------------------------------------------------------------

def test_verification_appends_trailing_result_when_enabled():
    providers = _providers(plan="1. Write code", command_result={"stdout": "agent execution complete"})

    result = _run(Relay(Settings(enable_execution_step=True), providers), "goal")

    providers.run_command.assert_awaited_once_with(VERIFY_COMMAND)
    last = result.results[-1]
    assert len(result.results) == 2
    assert last.provider is Provider.EXECUTION
    assert last.step == f"Run verification command in Replit: {VERIFY_COMMAND}"
    assert json.loads(last.output) == {"stdout": "agent execution complete"}

def test_verification_failure_aborts_run():
    providers = _providers(plan="1. Write code")
    providers.run_command = AsyncMock(side_effect=TransportError("nope", payload="repl offline"))

    with pytest.raises(UpstreamLogicError) as info:
        _run(Relay(Settings(enable_execution_step=True), providers), "goal")
    assert info.value.payload == "repl offline"
