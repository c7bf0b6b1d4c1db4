"""Tests for the high-level AGI operation catalog."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

from agikit.errors import (
    CommandNotPermittedError,
    HangupError,
    InputTimeoutError,
    ProtocolError,
    ResultParseError,
)
from agikit.operations import AgiOperations, ChannelState, RecordOptions, quote

Factory = Callable[..., Any]

OK = "200 result=0\n"
NEW_YEAR = datetime(2024, 1, 1, tzinfo=UTC)  # 1704067200


class TestQuote:
    """Argument quoting for the AGI argument parser."""

    def test_plain(self):
        """Words without spaces pass through."""
        assert quote("hello") == "hello"

    def test_empty(self):
        """Empty arguments become an empty quoted string."""
        assert quote("") == '""'

    def test_spaces(self):
        """Arguments with spaces are wrapped in quotes."""
        assert quote("hello world") == '"hello world"'

    def test_escapes(self):
        """Embedded quotes and backslashes are escaped."""
        assert quote('say "hi" \\o/') == '"say \\"hi\\" \\\\o/"'


class TestCallControl:
    """answer, hangup, status, exec."""

    @pytest.mark.asyncio
    async def test_answer(self, make_session: Factory) -> None:
        """ANSWER succeeds on 200."""
        session, peer = await make_session(OK)
        await session.answer()
        assert peer.commands == ["ANSWER"]

    @pytest.mark.asyncio
    async def test_answer_failure_raises(self, make_session: Factory) -> None:
        """A failing status raises the response error."""
        session, _ = await make_session("510 result=-1\n")
        with pytest.raises(ProtocolError):
            await session.answer()

    @pytest.mark.asyncio
    async def test_hangup(self, make_session: Factory) -> None:
        """HANGUP command is sent."""
        session, peer = await make_session("200 result=1\n")
        await session.hangup()
        assert peer.commands == ["HANGUP"]

    @pytest.mark.asyncio
    async def test_status(self, make_session: Factory) -> None:
        """CHANNEL STATUS maps to ChannelState."""
        session, peer = await make_session("200 result=6\n")
        assert await session.status() is ChannelState.UP
        assert peer.commands == ["CHANNEL STATUS"]

    @pytest.mark.asyncio
    async def test_status_unknown_state(self, make_session: Factory) -> None:
        """Out-of-range states are a result parse error."""
        session, _ = await make_session("200 result=42\n")
        with pytest.raises(ResultParseError):
            await session.status()

    @pytest.mark.asyncio
    async def test_exec_joins_arguments(self, make_session: Factory) -> None:
        """Application arguments are comma-joined and quoted."""
        session, peer = await make_session("200 result=0\n")
        await session.exec_("Dial", "SIP/100", "30")
        assert peer.commands == ["EXEC Dial SIP/100,30"]

    @pytest.mark.asyncio
    async def test_exec_without_arguments(self, make_session: Factory) -> None:
        """No options token is sent without arguments."""
        session, peer = await make_session("200 result=0\n")
        await session.exec_("Congestion")
        assert peer.commands == ["EXEC Congestion"]


class TestVariables:
    """GET/SET VARIABLE."""

    @pytest.mark.asyncio
    async def test_get_variable(self, make_session: Factory) -> None:
        """The value in parentheses is returned."""
        session, peer = await make_session("200 result=1 (en)\n")
        assert await session.get_variable("CHANNEL(language)") == "en"
        assert peer.commands == ["GET VARIABLE CHANNEL(language)"]

    @pytest.mark.asyncio
    async def test_get_unset_variable(self, make_session: Factory) -> None:
        """Unset variables read as empty."""
        session, _ = await make_session("200 result=0\n")
        assert await session.get_variable("NOPE") == ""

    @pytest.mark.asyncio
    async def test_set_variable_quotes_value(self, make_session: Factory) -> None:
        """Values with spaces are quoted."""
        session, peer = await make_session(OK)
        await session.set_variable("GREETING", "hello world")
        assert peer.commands == ['SET VARIABLE GREETING "hello world"']

    @pytest.mark.asyncio
    async def test_set_raw(self, make_session: Factory) -> None:
        """SET passes arguments through."""
        session, peer = await make_session(OK)
        await session.set_raw("CALLERID", "100")
        assert peer.commands == ["SET CALLERID 100"]


class TestInput:
    """GET DATA and WAIT FOR DIGIT."""

    @pytest.mark.asyncio
    async def test_get_data_digits(self, make_session: Factory) -> None:
        """Collected digits come from the result token."""
        session, peer = await make_session("200 result=0123\n")
        assert await session.get_data("enter-pin", 5.0, 4) == "0123"
        assert peer.commands == ["GET DATA enter-pin 5000 4"]

    @pytest.mark.asyncio
    async def test_get_data_default_sound(self, make_session: Factory) -> None:
        """An empty sound plays silence."""
        session, peer = await make_session("200 result=1\n")
        await session.get_data("", 2.5, 1)
        assert peer.commands == ["GET DATA silence/1 2500 1"]

    @pytest.mark.asyncio
    async def test_get_data_timeout(self, make_session: Factory) -> None:
        """A timeout raises InputTimeoutError carrying the digits entered so far."""
        session, _ = await make_session("200 result=1234 (timeout)\n")
        with pytest.raises(InputTimeoutError) as exc_info:
            await session.get_data("enter-pin", 5.0, 4)
        assert exc_info.value.digits == "1234"
        assert exc_info.value.code == "timeout"

    @pytest.mark.asyncio
    async def test_get_data_timeout_without_digits(self, make_session: Factory) -> None:
        """A timeout before any key press carries no digits."""
        session, _ = await make_session("200 result= (timeout)\n")
        with pytest.raises(InputTimeoutError) as exc_info:
            await session.get_data("enter-pin", 5.0, 4)
        assert exc_info.value.digits == ""

    @pytest.mark.asyncio
    async def test_get_data_defaults(self, make_session: Factory) -> None:
        """Without arguments GET DATA plays silence for five seconds and takes one digit."""
        session, peer = await make_session("200 result=7\n")
        assert await session.get_data() == "7"
        assert peer.commands == ["GET DATA silence/1 5000 1"]

    @pytest.mark.asyncio
    async def test_get_data_hangup(self, make_session: Factory) -> None:
        """Result -1 raises HangupError."""
        session, _ = await make_session("200 result=-1\n")
        with pytest.raises(HangupError):
            await session.get_data("enter-pin", 5.0, 4)

    @pytest.mark.asyncio
    async def test_get_data_dead_channel(self, make_session: Factory) -> None:
        """The dead-channel reply raises CommandNotPermittedError."""
        session, _ = await make_session("511 Command Not Permitted on a dead channel or intercept routine\n")
        with pytest.raises(CommandNotPermittedError):
            await session.get_data("enter-pin", 5.0, 4)

    @pytest.mark.asyncio
    async def test_wait_for_digit(self, make_session: Factory) -> None:
        """The ASCII code is decoded to the digit."""
        session, peer = await make_session("200 result=49\n")
        assert await session.wait_for_digit(3.0) == "1"
        assert peer.commands == ["WAIT FOR DIGIT 3000"]

    @pytest.mark.asyncio
    async def test_wait_for_digit_none(self, make_session: Factory) -> None:
        """No digit yields an empty string."""
        session, _ = await make_session("200 result=0\n")
        assert await session.wait_for_digit(3.0) == ""

    @pytest.mark.asyncio
    async def test_wait_for_silence(self, make_session: Factory) -> None:
        """WaitForSilence runs, then WAITSTATUS is read."""
        session, peer = await make_session(OK, "200 result=1 (SILENCE)\n")
        assert await session.wait_for_silence(500, 2, 10.0) == "SILENCE"
        assert peer.commands == ["EXEC WaitForSilence 500,2,10", "GET VARIABLE WAITSTATUS"]


class TestPlayback:
    """STREAM FILE, Playback, BackGround, RECORD FILE."""

    @pytest.mark.asyncio
    async def test_stream_file(self, make_session: Factory) -> None:
        """Empty escape digits are sent as an empty quoted string."""
        session, peer = await make_session("200 result=0 endpos=8000\n")
        assert await session.stream_file("welcome") == ""
        assert peer.commands == ['STREAM FILE welcome "" 0']

    @pytest.mark.asyncio
    async def test_stream_file_interrupted(self, make_session: Factory) -> None:
        """The pressed escape digit is returned."""
        session, _ = await make_session("200 result=35 endpos=1200\n")
        assert await session.stream_file("welcome", "#") == "#"

    @pytest.mark.asyncio
    async def test_exec_playback(self, make_session: Factory) -> None:
        """Files are joined with ``&`` and PLAYBACKSTATUS returned."""
        session, peer = await make_session(OK, "200 result=1 (SUCCESS)\n")
        assert await session.exec_playback("hello", "world") == "SUCCESS"
        assert peer.commands == ["EXEC Playback hello&world", "GET VARIABLE PLAYBACKSTATUS"]

    @pytest.mark.asyncio
    async def test_exec_background(self, make_session: Factory) -> None:
        """BackGround status comes from BACKGROUNDSTATUS."""
        session, peer = await make_session(OK, "200 result=1 (SUCCESS)\n")
        assert await session.exec_background("menu") == "SUCCESS"
        assert peer.commands == ["EXEC BackGround menu", "GET VARIABLE BACKGROUNDSTATUS"]

    @pytest.mark.asyncio
    async def test_record_defaults(self, make_session: Factory) -> None:
        """Default options: wav, ``#``, five minutes."""
        session, peer = await make_session("200 result=0 (timeout) endpos=0\n")
        await session.record("/tmp/msg")
        assert peer.commands == ["RECORD FILE /tmp/msg wav # 300000"]

    @pytest.mark.asyncio
    async def test_record_options(self, make_session: Factory) -> None:
        """Offset, BEEP and silence are appended in order."""
        session, peer = await make_session("200 result=0\n")
        opts = RecordOptions(format="gsm", escape_digits="*", timeout=10, silence=3, beep=True, offset=100)
        await session.record("/tmp/msg", opts)
        assert peer.commands == ["RECORD FILE /tmp/msg gsm * 10000 100 BEEP s=3"]


class TestSay:
    """SAY family."""

    @pytest.mark.asyncio
    async def test_say_alpha(self, make_session: Factory) -> None:
        """SAY ALPHA with no escape digits."""
        session, peer = await make_session(OK)
        assert await session.say_alpha("abc") == ""
        assert peer.commands == ['SAY ALPHA abc ""']

    @pytest.mark.asyncio
    async def test_say_digits_interrupted(self, make_session: Factory) -> None:
        """The escape digit that interrupted playback is returned."""
        session, peer = await make_session("200 result=50\n")
        assert await session.say_digits("1234", "12") == "2"
        assert peer.commands == ["SAY DIGITS 1234 12"]

    @pytest.mark.asyncio
    async def test_say_number(self, make_session: Factory) -> None:
        """SAY NUMBER."""
        session, peer = await make_session(OK)
        await session.say_number("42")
        assert peer.commands == ['SAY NUMBER 42 ""']

    @pytest.mark.asyncio
    async def test_say_phonetic(self, make_session: Factory) -> None:
        """SAY PHONETIC."""
        session, peer = await make_session(OK)
        await session.say_phonetic("abc")
        assert peer.commands == ['SAY PHONETIC abc ""']

    @pytest.mark.asyncio
    async def test_say_date_and_time(self, make_session: Factory) -> None:
        """Dates and times are sent as epoch seconds."""
        session, peer = await make_session(OK, OK)
        await session.say_date(NEW_YEAR)
        await session.say_time(NEW_YEAR, "#")
        assert peer.commands == ['SAY DATE 1704067200 ""', "SAY TIME 1704067200 #"]

    @pytest.mark.asyncio
    async def test_say_datetime_defaults(self, make_session: Factory) -> None:
        """Default format is quoted and the zone comes from the timestamp."""
        session, peer = await make_session(OK)
        await session.say_datetime(NEW_YEAR)
        assert peer.commands == ["SAY DATETIME 1704067200 \"\" \"ABdY 'digits/at' IMp\" UTC"]

    @pytest.mark.asyncio
    async def test_say_datetime_naive(self, make_session: Factory) -> None:
        """Naive timestamps send no zone."""
        session, peer = await make_session(OK)
        await session.say_datetime(datetime(2024, 1, 1, 12, 0), "#", "HM")  # noqa: DTZ001
        assert peer.commands[0].endswith(" # HM")


class TestLogging:
    """VERBOSE and the Log application."""

    @pytest.mark.asyncio
    async def test_verbose(self, make_session: Factory) -> None:
        """Messages are quoted, level appended."""
        session, peer = await make_session("200 result=1\n")
        await session.verbose("call started", 3)
        assert peer.commands == ['VERBOSE "call started" 3']

    @pytest.mark.asyncio
    async def test_log_error(self, make_session: Factory) -> None:
        """Log levels are uppercased and comma-joined with the message."""
        session, peer = await make_session(OK)
        await session.log_error("disk full")
        assert peer.commands == ['EXEC Log "ERROR,disk full"']

    @pytest.mark.asyncio
    async def test_log_custom_level(self, make_session: Factory) -> None:
        """Arbitrary levels are uppercased."""
        session, peer = await make_session(OK)
        await session.log("notice", "ok")
        assert peer.commands == ["EXEC Log NOTICE,ok"]

    @pytest.mark.asyncio
    async def test_level_helpers(self, make_session: Factory) -> None:
        """Each helper sends its level."""
        session, peer = await make_session(OK, OK, OK, OK, OK)
        await session.log_warning("w")
        await session.log_notice("n")
        await session.log_debug("d")
        await session.log_verbose("v")
        await session.log_dtmf("t")
        assert peer.commands == [
            "EXEC Log WARNING,w",
            "EXEC Log NOTICE,n",
            "EXEC Log DEBUG,d",
            "EXEC Log VERBOSE,v",
            "EXEC Log DTMF,t",
        ]


class TestCatalogBase:
    """The catalog needs a concrete round-trip."""

    def test_abstract_without_round_trip(self):
        """The bare catalog cannot be instantiated."""
        with pytest.raises(TypeError):
            AgiOperations()  # type: ignore[abstract]
