# display.py
# All terminal output for the relay.
#
# This module owns presentation entirely. harness.py and run.py never
# format strings for the terminal; they call named functions here.
#
# Colour language:
#   cyan: pipeline phases / routing
#   blue: planner (reasoning provider)
#   magenta: code provider
#   green: execution provider, success
#   yellow: retries
#   red: failures

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from agent_relay.models import Provider, RunResult, Settings

console = Console()
err_console = Console(stderr=True)

RESULT_PREVIEW_CHARS = 800

_PROVIDER_COLORS = {
    Provider.REASONING: "blue",
    Provider.CODE: "magenta",
    Provider.EXECUTION: "green",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


def _provider_tag(provider: Provider) -> Text:
    return _label(provider.value, _PROVIDER_COLORS[provider])


# ---------------------------------------------------------------------------
# Pipeline entry
# ---------------------------------------------------------------------------


def banner(settings: Settings) -> None:
    execution = "enabled" if settings.enable_execution_step else "disabled"
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Agent Relay[/bold cyan]\n"
            "[dim]Plan with one model, route each step, optionally verify remotely[/dim]\n\n"
            f"[dim]Planner model :[/dim] [white]{settings.planner.model}[/white]\n"
            f"[dim]Coder model   :[/dim] [white]{settings.coder.model}[/white]\n"
            f"[dim]Verification  :[/dim] [white]{execution}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def goal_received(goal: str) -> None:
    console.print()
    console.print(Rule("[cyan]NEW GOAL[/cyan]", style="cyan"))
    console.print(
        Panel(
            f"[white]{escape(goal)}[/white]",
            title=_label("GOAL", "cyan"),
            border_style="cyan",
            padding=(0, 2),
        )
    )


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def calling_planner() -> None:
    console.print()
    console.print(_label("RELAY", "cyan"), "[cyan] → Asking the planner to break the goal into steps…[/cyan]")


def plan_received(plan: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[white]{escape(plan)}[/white]" if plan else "[dim](empty response)[/dim]",
            title=_label("PLAN", "blue"),
            border_style="blue",
            padding=(0, 2),
        )
    )


def steps_extracted(steps: list[str], routes: list[Provider]) -> None:
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="cyan",
        show_header=True,
        header_style="bold cyan",
        padding=(0, 1),
    )
    table.add_column("#", justify="center", width=4)
    table.add_column("Provider", width=14)
    table.add_column("Step", style="white")

    for index, (step, provider) in enumerate(zip(steps, routes), start=1):
        table.add_row(str(index), _provider_tag(provider), escape(step))

    console.print(table)


# ---------------------------------------------------------------------------
# Execution loop
# ---------------------------------------------------------------------------


def execution_start(total: int) -> None:
    console.print()
    console.print(Rule(f"[cyan]EXECUTION — {total} step(s)[/cyan]", style="cyan"))


def step_start(index: int, total: int, step: str, provider: Provider) -> None:
    console.print()
    console.print(
        f"[bold cyan]  STEP [{index + 1}/{total}][/bold cyan]  ",
        _provider_tag(provider),
        f"  [white]{escape(step)}[/white]",
    )


def step_output(output: str) -> None:
    flat = output.replace("\n", " ")
    console.print(f"  [dim]↳[/dim] [white]{escape(_mono(flat, 140))}[/white]")


def verification_start(command: str) -> None:
    console.print()
    console.print(Rule("[green]REMOTE VERIFICATION[/green]", style="green"))
    console.print(f"  [green]→ Running[/green] [bold white]{escape(command)}[/bold white]")


def retry_scheduled(label: str, attempt: int, delay: float, error: BaseException) -> None:
    err_console.print(
        _label("RETRY", "yellow"),
        f"[yellow] {escape(label)} failed (attempt {attempt}). "
        f"Retrying in {round(delay * 1000)}ms…[/yellow]",
        f"[dim]{escape(_mono(str(error), 160))}[/dim]",
    )


# ---------------------------------------------------------------------------
# Final output
# ---------------------------------------------------------------------------


def results(run: RunResult, max_len: int = RESULT_PREVIEW_CHARS) -> None:
    console.print()
    console.print(Rule("[green]RESULTS[/green]", style="green"))
    for item in run.results:
        console.print()
        console.print(_provider_tag(item.provider), f" [bold white]{escape(item.step)}[/bold white]")
        console.print(_mono(item.output, max_len), markup=False, highlight=False)


def done() -> None:
    console.print()
    console.print("[bold green]Done.[/bold green]")


def failure(details: str) -> None:
    err_console.print()
    err_console.print(
        Panel(
            Text(f"Agent failed: {details}", style="bold white"),
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
