# models.py
# Data contracts for the relay: settings, provider identifiers and results.
# No business logic lives here, only schema.

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PLANNER_MODEL = "gpt-4o-mini"
DEFAULT_CODER_MODEL = "deepsea-coder-latest"

CODE_KEYWORDS: tuple[str, ...] = (
    "code",
    "function",
    "bug",
    "refactor",
    "test",
    "script",
    "api integration",
    "implementation",
)


class Provider(str, Enum):
    """Which upstream API handled a step."""

    CODE = "deepsea-coder"
    REASONING = "gpt"
    EXECUTION = "replit"


class ChatProviderSettings(BaseModel):
    """Connection details for an OpenAI-compatible chat completions API."""

    model_config = ConfigDict(frozen=True)

    base_url: str | None = None
    api_key: str | None = None
    model: str


class ExecutionProviderSettings(BaseModel):
    """Connection details for the remote command runner."""

    model_config = ConfigDict(frozen=True)

    base_url: str | None = None
    api_key: str | None = None
    repl_id: str | None = None


class Settings(BaseModel):
    """Immutable process configuration, built once by config.load_config()."""

    model_config = ConfigDict(frozen=True)

    planner: ChatProviderSettings = Field(
        default_factory=lambda: ChatProviderSettings(model=DEFAULT_PLANNER_MODEL)
    )
    coder: ChatProviderSettings = Field(
        default_factory=lambda: ChatProviderSettings(model=DEFAULT_CODER_MODEL)
    )
    executor: ExecutionProviderSettings = Field(default_factory=ExecutionProviderSettings)

    http_timeout_ms: int = Field(default=30000, description="Per-request timeout.")
    max_retries: int = Field(default=2, description="Extra attempts after the first failure.")
    max_steps: int = Field(default=8, description="Hard cap on steps executed per run.")
    retry_delay_ms: int = Field(default=400, description="Backoff base delay.")
    enable_execution_step: bool = False
    code_keywords: tuple[str, ...] = CODE_KEYWORDS

    @property
    def timeout_s(self) -> float:
        return self.http_timeout_ms / 1000


class ExecutionResult(BaseModel):
    """One executed step. Output is never blank."""

    model_config = ConfigDict(frozen=True)

    step: str
    provider: Provider
    output: str


class RunResult(BaseModel):
    """Everything a finished run hands back for display."""

    goal: str
    plan: str
    results: list[ExecutionResult] = Field(default_factory=list)
