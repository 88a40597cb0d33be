# errors.py
# Exception taxonomy for the relay.
#
# Every layer lets these propagate; only the retry wrapper catches
# (and re-raises once its budget is spent), and only run.main() turns
# them into an exit status.

import json
from typing import Any


class RelayError(Exception):
    """Base class. `payload` holds the upstream response body when there is one."""

    def __init__(self, message: str, *, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload


class ConfigError(RelayError):
    """Raised before any network activity when settings are missing or malformed."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = list(problems)


class TransportError(RelayError):
    """A single HTTP attempt failed: timeout, connection error, non-2xx or non-JSON body."""

    def __init__(self, message: str, *, status_code: int | None = None, payload: Any = None) -> None:
        super().__init__(message, payload=payload)
        self.status_code = status_code


class NoStepsError(RelayError):
    """The planner's output yielded zero usable steps."""


class UpstreamLogicError(RelayError):
    """A step or verification call exhausted its retries. Aborts the run."""


def describe_error(exc: BaseException) -> str:
    """One-line diagnostic, preferring the upstream payload when present."""
    payload = getattr(exc, "payload", None)
    if payload is None or payload == "":
        return str(exc) or exc.__class__.__name__
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, ensure_ascii=False)
