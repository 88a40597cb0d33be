# providers.py
# Thin clients for the three upstream APIs.
#
# Planner and coder speak OpenAI-compatible chat completions through the
# openai SDK; the command runner is a plain httpx POST. Every single
# attempt raises TransportError on failure, and every call goes through
# retry.with_retries(). Nothing here catches what the wrapper re-raises.

from typing import Any

import httpx
import openai
from openai import AsyncOpenAI

from agent_relay.errors import TransportError
from agent_relay.models import ChatProviderSettings, Settings
from agent_relay.retry import RetryPolicy, with_retries

CODER_SYSTEM_PROMPT = "You are a precise coding assistant."

PLANNER_TEMPERATURE = 0.2
CODER_TEMPERATURE = 0.1


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _trim_slash(url: str | None) -> str:
    return (url or "").rstrip("/")


def _payload(response: httpx.Response) -> Any:
    """Upstream body, JSON-decoded when possible."""
    try:
        return response.json()
    except ValueError:
        return response.text or None


def first_message_content(body: Any) -> str:
    """
    Return choices[0].message.content trimmed, or "" when any part of
    that path is missing or not the expected type.
    """
    choices = body.get("choices") if isinstance(body, dict) else None
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    return content.strip() if isinstance(content, str) else ""


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class Providers:
    """
    Owns the HTTP plumbing for one run.

    Pass `http_client` to route every request through a caller-owned
    httpx.AsyncClient (tests use httpx.MockTransport); otherwise a client
    is created here and closed by aclose().
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._policy = RetryPolicy.from_settings(settings)
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=settings.timeout_s)
        self._planner = self._chat_client(settings.planner)
        self._coder = self._chat_client(settings.coder)

    def _chat_client(self, provider: ChatProviderSettings) -> AsyncOpenAI:
        # SDK retries are off: with_retries() is the only retry layer.
        return AsyncOpenAI(
            api_key=provider.api_key,
            base_url=_trim_slash(provider.base_url),
            timeout=self._settings.timeout_s,
            max_retries=0,
            http_client=self._http,
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "Providers":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Chat completions
    # ------------------------------------------------------------------

    async def _chat(
        self,
        client: AsyncOpenAI,
        provider: ChatProviderSettings,
        messages: list[dict],
        temperature: float,
    ) -> str:
        url = f"{_trim_slash(provider.base_url)}/chat/completions"

        async def attempt() -> Any:
            try:
                raw = await client.chat.completions.with_raw_response.create(
                    model=provider.model,
                    messages=messages,
                    temperature=temperature,
                )
            except openai.APIStatusError as exc:
                raise TransportError(
                    f"POST {url} returned HTTP {exc.status_code}",
                    status_code=exc.status_code,
                    payload=_payload(exc.response),
                ) from exc
            except openai.APIError as exc:
                raise TransportError(f"POST {url} failed: {exc}") from exc

            try:
                return raw.http_response.json()
            except ValueError as exc:
                raise TransportError(
                    f"POST {url} returned a non-JSON body",
                    status_code=raw.http_response.status_code,
                    payload=raw.http_response.text,
                ) from exc

        body = await with_retries(f"POST {url}", attempt, self._policy)
        return first_message_content(body)

    async def call_planner(self, messages: list[dict]) -> str:
        return await self._chat(self._planner, self._settings.planner, messages, PLANNER_TEMPERATURE)

    async def call_coder(self, prompt: str) -> str:
        messages = [
            {"role": "system", "content": CODER_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        return await self._chat(self._coder, self._settings.coder, messages, CODER_TEMPERATURE)

    # ------------------------------------------------------------------
    # Remote command runner
    # ------------------------------------------------------------------

    async def run_command(self, command: str) -> Any:
        """POST the command to the configured repl and return the parsed body as-is."""
        executor = self._settings.executor
        url = f"{_trim_slash(executor.base_url)}/repls/{executor.repl_id}/run"

        async def attempt() -> Any:
            try:
                response = await self._http.post(
                    url,
                    json={"command": command},
                    headers={"Authorization": f"Bearer {executor.api_key}"},
                    timeout=self._settings.timeout_s,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise TransportError(
                    f"POST {url} returned HTTP {exc.response.status_code}",
                    status_code=exc.response.status_code,
                    payload=_payload(exc.response),
                ) from exc
            except httpx.HTTPError as exc:
                raise TransportError(f"POST {url} failed: {exc}") from exc

            try:
                return response.json()
            except ValueError as exc:
                raise TransportError(
                    f"POST {url} returned a non-JSON body",
                    status_code=response.status_code,
                    payload=response.text,
                ) from exc

        return await with_retries(f"POST {url}", attempt, self._policy)
