"""Error taxonomy for AGI sessions.

The session engine never raises these for protocol or transport failures: it
stores them in ``Response.error``. Callers (the operation catalog, user
handlers) decide whether to raise them.
"""

COMMAND_NOT_PERMITTED_MESSAGE = "Command Not Permitted on a dead channel or intercept routine"


class AgiError(Exception):
    """Base class for every failure a command round-trip can report."""

    code = "agi_error"

    def __init__(self, message: str) -> None:
        """Initialize with a human-readable message.

        Args:
            message: Human-readable error description.

        """
        super().__init__(message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AgiError):
            return NotImplemented
        return type(self) is type(other) and self.args == other.args

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class HangupError(AgiError):
    """The channel hung up, either mid-exchange or via the ``-1`` sentinel."""

    code = "hangup"

    def __init__(self, message: str = "hangup") -> None:
        super().__init__(message)


class InputTimeoutError(AgiError):
    """A data-collection command received no input before its deadline.

    ``digits`` holds any input collected before the deadline passed.
    """

    code = "timeout"

    def __init__(self, message: str = "timeout", *, digits: str = "") -> None:
        super().__init__(message)
        self.digits = digits


class ProtocolError(AgiError):
    """Asterisk answered with a non-200 status."""

    code = "protocol_error"

    def __init__(self, status: int, message: str = "non-200 status code") -> None:
        super().__init__(message)
        self.status = status

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProtocolError):
            return NotImplemented
        return type(self) is type(other) and self.args == other.args and self.status == other.status

    def __hash__(self) -> int:
        return hash((type(self), self.args, self.status))


class CommandNotPermittedError(AgiError):
    """Status 511: the command is not allowed on a dead channel or in an intercept routine."""

    code = "command_not_permitted"
    status = 511

    def __init__(self, message: str = COMMAND_NOT_PERMITTED_MESSAGE) -> None:
        super().__init__(message)


class MalformedResponseError(AgiError):
    """The response line matches none of the known grammars."""

    code = "malformed_response"

    def __init__(self, line: str) -> None:
        super().__init__(f"failed to parse result: {line}")
        self.line = line


class StatusParseError(AgiError):
    """The status field is not an integer; nothing else on the line can be trusted."""

    code = "status_parse"

    def __init__(self, token: str) -> None:
        super().__init__(f"failed to get status code: {token!r}")


class ResultParseError(AgiError):
    """The result token is not an integer (strict mode only).

    Status and value of the response remain usable.
    """

    code = "result_parse"

    def __init__(self, token: str) -> None:
        super().__init__(f"failed to parse result-code as an integer: {token!r}")


class TransportError(AgiError):
    """Writing the command or reading the response failed on the underlying stream."""

    code = "transport"


class ServerError(Exception):
    """The FastAGI listener could not bind or stopped accepting connections."""
