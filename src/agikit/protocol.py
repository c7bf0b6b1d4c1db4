"""Response model and grammar parser for the AGI line protocol.

Plain text with newline framing. The controller writes one command line,
Asterisk answers with one status line:

Command:   GET DATA silence/1 5000 4
Response:  200 result=1234 (timeout)
Error:     511 Command Not Permitted on a dead channel or intercept routine
Hangup:    HANGUP

Multi-line responses (``520-Invalid command syntax.`` followed by usage text)
are not supported: only the first non-blank line of a reply is parsed.
"""

import enum
import re
from dataclasses import dataclass
from typing import Self

from agikit.errors import (
    COMMAND_NOT_PERMITTED_MESSAGE,
    AgiError,
    CommandNotPermittedError,
    HangupError,
    InputTimeoutError,
    MalformedResponseError,
    ProtocolError,
    ResultParseError,
    StatusParseError,
)

# Status codes with special meaning
STATUS_OK = 200
STATUS_INVALID = 510  # command not understood
STATUS_DEAD_CHANNEL = 511  # not permitted on a dead channel or intercept routine
STATUS_END_USAGE = 520  # end of usage text, treated as a generic failure

HANGUP_PREFIX = "HANGUP"
TIMEOUT_VALUE = "timeout"
HANGUP_VALUE = "-1"

# Used when a permissive-mode result token is not numeric
PERMISSIVE_DEFAULT_RESULT = 1

_STRICT_RE = re.compile(r"(\d{3})\sresult=(-?[A-Za-z0-9]*)(\s.*)?", re.ASCII)
_PERMISSIVE_RE = re.compile(r"(\d{3})\sresult=(-?[A-Za-z0-9_*]*)(\s.*)?", re.ASCII)
_PERMISSIVE_OTHER_RE = re.compile(r"(\d{3})\s([\s\w]+)", re.ASCII)
_INTEGER_RE = re.compile(r"-?[0-9]+", re.ASCII)


class ParseMode(enum.Enum):
    """Response grammar selector."""

    STRICT = "strict"
    PERMISSIVE = "permissive"


@dataclass(frozen=True)
class Response:
    """Outcome of one command round-trip."""

    error: AgiError | None = None
    status: int = 0
    result: int = 0
    result_string: str = ""
    value: str = ""

    @property
    def ok(self) -> bool:
        """True when the round-trip reported no failure."""
        return self.error is None

    def err(self) -> AgiError | None:
        """Return the failure, if any."""
        return self.error

    def res(self) -> tuple[str, AgiError | None]:
        """Return the raw result token and the failure, if any."""
        return self.result_string, self.error

    def val(self) -> tuple[str, AgiError | None]:
        """Return the trailing value and the failure, if any."""
        return self.value, self.error

    def raise_for_error(self) -> Self:
        """Raise the stored failure, or return self when there is none.

        Raises:
            AgiError: The failure reported by the round-trip.

        """
        if self.error is not None:
            raise self.error
        return self

    def summary(self) -> str:
        """Compact one-line rendering used in protocol debug logs."""
        if self.error is not None:
            return f"{{Err:{self.error}}}"
        parts = [f"Sta:{self.status}", f"Res:{self.result}"]
        if self.result_string:
            parts.append(f"Str:{self.result_string}")
        if self.value:
            parts.append(f"Val:{self.value}")
        return "{" + " ".join(parts) + "}"


def parse_int(token: str) -> int | None:
    """Parse a signed decimal integer, returning None when the token is anything else."""
    if _INTEGER_RE.fullmatch(token) is None:
        return None
    return int(token)


def _unwrap_value(raw: str | None) -> str:
    """Trim the text after the result token and strip one pair of enclosing parentheses."""
    value = (raw or "").strip()
    if len(value) >= 2 and value.startswith("(") and value.endswith(")"):
        return value[1:-1]
    return value


def parse_response(line: str, mode: ParseMode = ParseMode.STRICT) -> Response:
    """Parse one raw response line into a Response.

    Args:
        line: A single response line, newline already stripped.
        mode: Grammar to apply.

    Returns:
        Response with every field the line could provide. Failures are stored
        in ``error``, never raised.

    """
    if line.startswith(HANGUP_PREFIX):
        return Response(error=HangupError())
    if mode is ParseMode.PERMISSIVE:
        return _parse_permissive(line)
    return _parse_strict(line)


def _parse_strict(line: str) -> Response:
    match = _STRICT_RE.fullmatch(line)
    if match is None:
        return Response(error=MalformedResponseError(line))

    status = parse_int(match.group(1))
    if status is None:
        return Response(error=StatusParseError(match.group(1)))

    error: AgiError | None = None
    result_string = match.group(2)
    result = parse_int(result_string)
    if result is None:
        result = 0
        error = ResultParseError(result_string)

    if status != STATUS_OK:
        error = ProtocolError(status)

    return Response(
        error=error, status=status, result=result, result_string=result_string, value=_unwrap_value(match.group(3))
    )


def _parse_permissive(line: str) -> Response:
    match = _PERMISSIVE_RE.fullmatch(line)
    raw_value: str | None = None
    if match is not None:
        raw_value = match.group(3)
    else:
        # Non-standard acknowledgements such as "511 Command Not Permitted ..."
        match = _PERMISSIVE_OTHER_RE.fullmatch(line)
        if match is None:
            return Response(error=MalformedResponseError(line))

    status = parse_int(match.group(1))
    if status is None:
        return Response(error=StatusParseError(match.group(1)))

    result_string = match.group(2)

    if status == STATUS_DEAD_CHANNEL:
        if result_string.casefold() == COMMAND_NOT_PERMITTED_MESSAGE.casefold():
            dead_error: AgiError = CommandNotPermittedError()
        else:
            dead_error = ProtocolError(STATUS_DEAD_CHANNEL, "Generic 511 Error")
        return Response(error=dead_error, status=status, result_string=result_string)

    result = parse_int(result_string)
    if result is None:
        result = PERMISSIVE_DEFAULT_RESULT
    value = _unwrap_value(raw_value)

    if status == STATUS_OK and (value == HANGUP_VALUE or (not value and result_string == HANGUP_VALUE)):
        return Response(error=HangupError(), status=status, result=result, result_string=result_string, value=value)

    error: AgiError | None = None
    if value == TIMEOUT_VALUE:
        error = InputTimeoutError()
    if status != STATUS_OK:
        error = ProtocolError(status)

    return Response(error=error, status=status, result=result, result_string=result_string, value=value)
