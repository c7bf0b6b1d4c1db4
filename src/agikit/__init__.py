"""Asterisk Gateway Interface sessions: AGI scripts, EAGI and FastAGI servers."""

from agikit.errors import AgiError as AgiError
from agikit.errors import CommandNotPermittedError as CommandNotPermittedError
from agikit.errors import HangupError as HangupError
from agikit.errors import InputTimeoutError as InputTimeoutError
from agikit.errors import MalformedResponseError as MalformedResponseError
from agikit.errors import ProtocolError as ProtocolError
from agikit.errors import ResultParseError as ResultParseError
from agikit.errors import ServerError as ServerError
from agikit.errors import StatusParseError as StatusParseError
from agikit.errors import TransportError as TransportError
from agikit.operations import ChannelState as ChannelState
from agikit.operations import RecordOptions as RecordOptions
from agikit.protocol import ParseMode as ParseMode
from agikit.protocol import Response as Response
from agikit.protocol import parse_response as parse_response
from agikit.server import FastAgiServer as FastAgiServer
from agikit.server import listen as listen
from agikit.session import Session as Session
