# run.py
# Entry point. Config and wiring only. No logic lives here.
#
# Usage:
#   agent-relay Write a sort function
#   python -m agent_relay            (uses DEFAULT_GOAL)

import asyncio
import sys

from dotenv import find_dotenv, load_dotenv

from agent_relay import display
from agent_relay.config import load_config, validate_config
from agent_relay.errors import describe_error
from agent_relay.harness import Relay
from agent_relay.models import RunResult, Settings
from agent_relay.providers import Providers

DEFAULT_GOAL = (
    "Build an AI agent that can plan tasks, generate code with DeepSea Coder, "
    "and run commands via Replit APIs."
)


def goal_from_args(args: list[str]) -> str:
    return " ".join(args).strip() or DEFAULT_GOAL


async def run_goal(settings: Settings, goal: str) -> RunResult:
    async with Providers(settings) as providers:
        return await Relay(settings, providers).run(goal)


def main(argv: list[str] | None = None) -> None:
    # .env is looked up from the working directory, not the installed package.
    load_dotenv(find_dotenv(usecwd=True))
    goal = goal_from_args(sys.argv[1:] if argv is None else argv)

    try:
        settings = load_config()
        validate_config(settings)
        display.banner(settings)
        result = asyncio.run(run_goal(settings, goal))
    except Exception as exc:
        display.failure(describe_error(exc))
        sys.exit(1)

    display.results(result)
    display.done()


if __name__ == "__main__":
    main()
