# harness.py
# The relay loop.
#
# Relay owns all control flow. Models are passive responders; neither
# provider sees the other's output.
#
# Control flow (strictly linear, no branching back):
#   planner → extract steps → route + execute each step in order
#   → optional remote verification → results
#
# All terminal output is delegated to display.py. No formatting here.

import json

from agent_relay import display
from agent_relay.errors import NoStepsError, TransportError, UpstreamLogicError
from agent_relay.models import ExecutionResult, Provider, RunResult, Settings
from agent_relay.providers import Providers
from agent_relay.steps import choose_provider, extract_steps

# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

PLANNER_SYSTEM_PROMPT = (
    "Break user goals into concise execution steps. "
    "Prefer 3-6 numbered items with one action each."
)

OPERATIONS_SYSTEM_PROMPT = "You are an AI operations assistant."

STEP_PROMPT = "Execute this step:\n{step}"

VERIFY_COMMAND = 'echo "agent execution complete"'

EMPTY_OUTPUT_MARKER = "[empty model response]"


# ---------------------------------------------------------------------------
# Relay
# ---------------------------------------------------------------------------


class Relay:
    """
    Sequences one run against the upstream providers.

    Example:
        async with Providers(settings) as providers:
            result = await Relay(settings, providers).run("Write a sort function")
    """

    def __init__(self, settings: Settings, providers: Providers) -> None:
        self._settings = settings
        self._providers = providers

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def plan(self, goal: str) -> str:
        """Ask the planner once. Transport failures propagate as-is."""
        display.calling_planner()
        plan = await self._providers.call_planner(
            [
                {"role": "system", "content": PLANNER_SYSTEM_PROMPT},
                {"role": "user", "content": f"Goal: {goal}"},
            ]
        )
        display.plan_received(plan)
        return plan

    def extract(self, plan: str) -> list[str]:
        steps = extract_steps(plan)[: self._settings.max_steps]
        if not steps:
            raise NoStepsError("Planner returned no actionable steps.")
        return steps

    async def execute_step(self, step: str, provider: Provider) -> ExecutionResult:
        prompt = STEP_PROMPT.format(step=step)
        try:
            if provider is Provider.CODE:
                output = await self._providers.call_coder(prompt)
            else:
                output = await self._providers.call_planner(
                    [
                        {"role": "system", "content": OPERATIONS_SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ]
                )
        except TransportError as exc:
            raise UpstreamLogicError(
                f"Step {step!r} failed on {provider.value}: {exc}",
                payload=exc.payload,
            ) from exc

        if not output or not output.strip():
            output = EMPTY_OUTPUT_MARKER
        return ExecutionResult(step=step, provider=provider, output=output)

    async def verify(self) -> ExecutionResult:
        display.verification_start(VERIFY_COMMAND)
        try:
            response = await self._providers.run_command(VERIFY_COMMAND)
        except TransportError as exc:
            raise UpstreamLogicError(
                f"Verification command failed on {Provider.EXECUTION.value}: {exc}",
                payload=exc.payload,
            ) from exc

        return ExecutionResult(
            step=f"Run verification command in Replit: {VERIFY_COMMAND}",
            provider=Provider.EXECUTION,
            output=json.dumps(response, ensure_ascii=False),
        )

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self, goal: str) -> RunResult:
        """
        Full pipeline. Any failure aborts the run; results gathered before
        the failing call are not returned.
        """
        display.goal_received(goal)

        # ── Phase 1: Plan ──────────────────────────────────────────────
        plan = await self.plan(goal)

        # ── Phase 2: Extract ──────────────────────────────────────────
        steps = self.extract(plan)
        routes = [choose_provider(step, self._settings.code_keywords) for step in steps]
        display.steps_extracted(steps, routes)

        # ── Phase 3: Execute, one step at a time ──────────────────────
        results: list[ExecutionResult] = []
        display.execution_start(len(steps))

        for index, (step, provider) in enumerate(zip(steps, routes)):
            display.step_start(index, len(steps), step, provider)
            record = await self.execute_step(step, provider)
            display.step_output(record.output)
            results.append(record)

        # ── Phase 4: Optional remote verification ─────────────────────
        if self._settings.enable_execution_step:
            record = await self.verify()
            display.step_output(record.output)
            results.append(record)

        return RunResult(goal=goal, plan=plan, results=results)
