"""High-level AGI operations built on the session round-trip primitive.

Each method turns typed arguments into one command line and raises the
response's ``AgiError`` on failure.
"""

import enum
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from agikit.errors import InputTimeoutError, ResultParseError
from agikit.protocol import Response

DEFAULT_SOUND = "silence/1"
DEFAULT_DATETIME_FORMAT = "ABdY 'digits/at' IMp"

_NEEDS_QUOTING_RE = re.compile(r"[\s\"\\]")


class ChannelState(enum.IntEnum):
    """Asterisk channel state, as reported by CHANNEL STATUS."""

    DOWN = 0
    RESERVED = 1
    OFFHOOK = 2
    DIALING = 3
    RING = 4
    RINGING = 5
    UP = 6
    BUSY = 7
    DIALING_OFFHOOK = 8
    PRE_RING = 9


@dataclass(frozen=True)
class RecordOptions:
    """Options for RECORD FILE."""

    format: str = "wav"
    escape_digits: str = "#"  # may not be blank
    timeout: float = 300.0  # seconds
    silence: float = 0.0  # seconds of silence that end the recording, 0 = disabled
    beep: bool = False
    offset: int = 0  # samples to skip at the start


def quote(arg: str) -> str:
    """Quote an argument for the AGI argument parser when it holds spaces, quotes or backslashes."""
    if not arg:
        return '""'
    if _NEEDS_QUOTING_RE.search(arg) is None:
        return arg
    escaped = arg.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _msec(seconds: float) -> str:
    return str(int(seconds * 1000))


def _sec(seconds: float) -> str:
    return str(int(seconds))


def _epoch(when: datetime) -> str:
    return str(int(when.timestamp()))


def _escape_digits(digits: str) -> str:
    # AGI needs an empty quoted string to hold the place of no escape digits
    return digits or '""'


def _digit(resp: Response) -> str:
    """Decode the ASCII code Asterisk returns for a pressed DTMF digit ("" when none)."""
    if not 0 < resp.result < 0x110000:
        return ""
    char = chr(resp.result)
    return char if char.isprintable() else ""


def _zone_name(when: datetime) -> str:
    tz = when.tzinfo
    if tz is None:
        return ""
    key = getattr(tz, "key", None)  # zoneinfo.ZoneInfo
    if isinstance(key, str):
        return key
    return when.tzname() or ""


class AgiOperations(ABC):
    """Command catalog mixed into ``Session``."""

    @abstractmethod
    async def command(self, *tokens: str) -> Response:
        """Send one command and parse the reply with the strict grammar."""

    @abstractmethod
    async def command_permissive(self, *tokens: str) -> Response:
        """Send one command and parse the reply with the permissive grammar."""

    # --- Call control ---

    async def answer(self) -> None:
        """Answer the channel."""
        (await self.command("ANSWER")).raise_for_error()

    async def hangup(self) -> None:
        """Hang up the channel."""
        (await self.command("HANGUP")).raise_for_error()

    async def status(self) -> ChannelState:
        """Return the channel state.

        Raises:
            ResultParseError: Asterisk reported a state outside the known range.

        """
        resp = (await self.command("CHANNEL STATUS")).raise_for_error()
        try:
            return ChannelState(resp.result)
        except ValueError:
            raise ResultParseError(resp.result_string) from None

    async def exec_(self, application: str, *args: str) -> str:
        """Run a dialplan application; arguments are comma-joined as the application expects."""
        tokens = ["EXEC", application]
        if args:
            tokens.append(quote(",".join(args)))
        return (await self.command(*tokens)).raise_for_error().value

    # --- Variables ---

    async def get_variable(self, name: str) -> str:
        """Return the value of a channel variable ("" when unset)."""
        return (await self.command("GET VARIABLE", name)).raise_for_error().value

    async def set_variable(self, name: str, value: str) -> None:
        """Set a channel variable."""
        (await self.command("SET VARIABLE", name, quote(value))).raise_for_error()

    async def set_raw(self, name: str, value: str) -> None:
        """Send a raw ``SET <name> <value>`` command (e.g. ``SET CALLERID``)."""
        (await self.command("SET", name, value)).raise_for_error()

    # --- Input ---

    async def get_data(self, sound: str = DEFAULT_SOUND, timeout: float = 5.0, max_digits: int = 1) -> str:
        """Play a prompt and collect DTMF digits.

        Raises:
            InputTimeoutError: The timeout passed; digits entered so far are in ``digits``.
            HangupError: The caller hung up.

        """
        resp = await self.command_permissive("GET DATA", sound or DEFAULT_SOUND, _msec(timeout), str(max_digits))
        if isinstance(resp.error, InputTimeoutError):
            raise InputTimeoutError(digits=resp.result_string)
        return resp.raise_for_error().result_string

    async def wait_for_digit(self, timeout: float) -> str:
        """Wait up to ``timeout`` seconds for one DTMF digit ("" when none)."""
        resp = await self.command("WAIT FOR DIGIT", _msec(timeout))
        return _digit(resp.raise_for_error())

    async def wait_for_silence(self, silence_ms: int, iterations: int, timeout: float | None = None) -> str:
        """Run WaitForSilence and return WAITSTATUS."""
        args = [str(silence_ms), str(iterations)]
        if timeout is not None and timeout > 0:
            args.append(_sec(timeout))
        await self.exec_("WaitForSilence", *args)
        return await self.get_variable("WAITSTATUS")

    # --- Playback ---

    async def stream_file(self, name: str, escape_digits: str = "", offset: int = 0) -> str:
        """Play a sound file; return the escape digit pressed, if any."""
        resp = await self.command("STREAM FILE", name, _escape_digits(escape_digits), str(offset))
        return _digit(resp.raise_for_error())

    async def exec_playback(self, *files: str) -> str:
        """Run Playback on the given files and return PLAYBACKSTATUS."""
        await self.exec_("Playback", "&".join(files))
        return await self.get_variable("PLAYBACKSTATUS")

    async def exec_background(self, *files: str) -> str:
        """Run BackGround on the given files and return BACKGROUNDSTATUS."""
        await self.exec_("BackGround", "&".join(files))
        return await self.get_variable("BACKGROUNDSTATUS")

    async def record(self, name: str, options: RecordOptions | None = None) -> None:
        """Record audio from the channel to a file."""
        opts = options or RecordOptions()
        tokens = ["RECORD FILE", name, opts.format, opts.escape_digits or "#", _msec(opts.timeout)]
        if opts.offset > 0:
            tokens.append(str(opts.offset))
        if opts.beep:
            tokens.append("BEEP")
        if opts.silence > 0:
            tokens.append(f"s={_sec(opts.silence)}")
        (await self.command(*tokens)).raise_for_error()

    # --- Say ---

    async def say_alpha(self, label: str, escape_digits: str = "") -> str:
        """Spell out a string character by character."""
        return _digit((await self.command("SAY ALPHA", label, _escape_digits(escape_digits))).raise_for_error())

    async def say_digits(self, number: str, escape_digits: str = "") -> str:
        """Say a number digit by digit."""
        return _digit((await self.command("SAY DIGITS", number, _escape_digits(escape_digits))).raise_for_error())

    async def say_number(self, number: str, escape_digits: str = "") -> str:
        """Say a whole number."""
        return _digit((await self.command("SAY NUMBER", number, _escape_digits(escape_digits))).raise_for_error())

    async def say_phonetic(self, phrase: str, escape_digits: str = "") -> str:
        """Spell out a string using the phonetic alphabet."""
        return _digit((await self.command("SAY PHONETIC", phrase, _escape_digits(escape_digits))).raise_for_error())

    async def say_date(self, when: datetime, escape_digits: str = "") -> str:
        """Say the date part of a timestamp."""
        return _digit((await self.command("SAY DATE", _epoch(when), _escape_digits(escape_digits))).raise_for_error())

    async def say_time(self, when: datetime, escape_digits: str = "") -> str:
        """Say the time part of a timestamp."""
        return _digit((await self.command("SAY TIME", _epoch(when), _escape_digits(escape_digits))).raise_for_error())

    async def say_datetime(self, when: datetime, escape_digits: str = "", format_: str = "", zone: str = "") -> str:
        """Say a timestamp using a voicemail.conf-style format.

        The zone defaults to the timestamp's own zone (its IANA key when it
        has one).
        """
        tokens = [
            "SAY DATETIME",
            _epoch(when),
            _escape_digits(escape_digits),
            quote(format_ or DEFAULT_DATETIME_FORMAT),
        ]
        zone = zone or _zone_name(when)
        if zone:
            tokens.append(zone)
        return _digit((await self.command(*tokens)).raise_for_error())

    # --- Logging ---

    async def verbose(self, message: str, level: int = 1) -> None:
        """Write a message to the Asterisk verbose log."""
        (await self.command("VERBOSE", quote(message), str(level))).raise_for_error()

    async def log(self, level: str, message: str) -> None:
        """Write a message to the Asterisk log at the given level via the Log application."""
        await self.exec_("Log", level.upper(), message)

    async def log_error(self, message: str) -> None:
        await self.log("ERROR", message)

    async def log_warning(self, message: str) -> None:
        await self.log("WARNING", message)

    async def log_notice(self, message: str) -> None:
        await self.log("NOTICE", message)

    async def log_debug(self, message: str) -> None:
        await self.log("DEBUG", message)

    async def log_verbose(self, message: str) -> None:
        await self.log("VERBOSE", message)

    async def log_dtmf(self, message: str) -> None:
        await self.log("DTMF", message)
