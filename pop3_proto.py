#region PROLOGUE --------------------------------------------------------------
from __future__ import annotations

# python imports:
from abc import abstractmethod
import email.message
import email.parser
import email.policy
import enum
import hashlib
import logging
import re
from typing import (
	Dict, FrozenSet, List, NamedTuple, Optional as Opt, Union,
)

import packaging.version # pip install packaging

# pop3_proto imports:
from base_proto import (
	BaseResponse, ResponseType, RequestT, Event, BaseAccumulator,
	Closed, ProtocolError, AuthenticationRequired, RequestProtocolGenerator,
	ClientProtocol, ClientUtil,
)
from util import BYTES, b2s, s2b

__version__ = packaging.version.parse ( '0.1.0' )

logger = logging.getLogger ( __name__ )


_r_eol = re.compile ( r'[\r\n]' )
_r_status = re.compile ( r'(\+OK|-ERR)(?:[ \t]+(.*?))?[ \t]*' )
_r_two_numbers = re.compile ( r'(\d+)[ \t]+(\d+)(?:[ \t].*)?' )
_r_number_token = re.compile ( r'(\d+)[ \t]+([\x21-\x7e]+)[ \t]*' )
_r_apop_challenge = re.compile ( r'(<[^<>]*>)' )

TERMINATOR = b'.\r\n'


#endregion
#region COMMANDS --------------------------------------------------------------

class Command ( enum.Enum ):
	GREETING = enum.auto()
	USER = enum.auto()
	PASS = enum.auto()
	APOP = enum.auto()
	CAPA = enum.auto()
	STLS = enum.auto()
	STAT = enum.auto()
	LIST_ALL = enum.auto()
	LIST_ONE = enum.auto()
	UIDL_ALL = enum.auto()
	UIDL_ONE = enum.auto()
	RETR = enum.auto()
	TOP = enum.auto()
	DELE = enum.auto()
	RSET = enum.auto()
	NOOP = enum.auto()
	QUIT = enum.auto()


# a +OK status line ends the exchange for these:
_single_line_commands: FrozenSet[Command] = frozenset ( (
	Command.GREETING, Command.USER, Command.PASS, Command.APOP,
	Command.STLS, Command.STAT, Command.LIST_ONE, Command.UIDL_ONE,
	Command.DELE, Command.RSET, Command.NOOP, Command.QUIT,
) )

# a +OK status line is followed by a body ending with '.' for these:
_multi_line_commands: FrozenSet[Command] = frozenset ( (
	Command.CAPA, Command.LIST_ALL, Command.UIDL_ALL, Command.RETR,
	Command.TOP,
) )

assert _single_line_commands.isdisjoint ( _multi_line_commands )
assert _single_line_commands | _multi_line_commands == frozenset ( Command )


#endregion
#region RESPONSES -------------------------------------------------------------

class Response ( BaseResponse ):
	def __init__ ( self, ok: bool, message: str ) -> None:
		self.ok = ok
		self.message = message
		super().__init__()

	def __eq__ ( self, other: object ) -> bool:
		return type ( self ) is type ( other ) and vars ( self ) == vars ( other )

	def __hash__ ( self ) -> int:
		return hash ( ( type ( self ), self.ok, self.message ) )

	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}({self.ok!r}, {self.message!r})'


class SuccessResponse ( Response ):
	def __init__ ( self, message: str ) -> None:
		super().__init__ ( True, message )

	def is_success ( self ) -> bool:
		return True


class ErrorResponse ( Response ):
	def __init__ ( self, message: str ) -> None:
		super().__init__ ( False, message )

	def is_success ( self ) -> bool:
		return False


class GreetingResponse ( SuccessResponse ):
	apop_challenge: Opt[str]

	def __init__ ( self, message: str ) -> None:
		m = _r_apop_challenge.search ( message )
		self.apop_challenge = m.group ( 1 ) if m else None
		super().__init__ ( message )


class StatResponse ( SuccessResponse ):
	def __init__ ( self, message: str, count: int, octets: int ) -> None:
		self.count = count
		self.octets = octets
		super().__init__ ( message )

	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}(count={self.count!r}, octets={self.octets!r})'


class ListMessage ( NamedTuple ):
	id: int
	octets: int


class ListResponse ( SuccessResponse ):
	def __init__ ( self, message: str, messages: List[ListMessage] ) -> None:
		self.messages = messages
		super().__init__ ( message )

	def __repr__ ( self ) -> str:
		cls = type ( self )
		messages = ', '.join ( f'({m.id!r}, {m.octets!r})' for m in self.messages )
		return f'{cls.__module__}.{cls.__name__}([{messages}])'


class UidlMessage ( NamedTuple ):
	id: int
	uid: str


class UidlResponse ( SuccessResponse ):
	def __init__ ( self, message: str, messages: List[UidlMessage] ) -> None:
		self.messages = messages
		super().__init__ ( message )

	def __repr__ ( self ) -> str:
		cls = type ( self )
		messages = ', '.join ( f'({m.id!r}, {m.uid!r})' for m in self.messages )
		return f'{cls.__module__}.{cls.__name__}([{messages}])'


class RetrResponse ( SuccessResponse ):
	'''
	lines are the message content with the status line, the terminator
	and each line's CRLF removed. Bytes that aren't valid utf-8 are
	preserved as surrogate escapes so .content returns them unchanged
	'''
	def __init__ ( self, message: str, lines: List[str] ) -> None:
		self.lines = lines
		super().__init__ ( message )

	@property
	def content ( self ) -> bytes:
		return b''.join (
			s2b ( line, 'utf-8', 'surrogateescape' ) + b'\r\n' for line in self.lines
		)

	def email_message ( self ) -> email.message.EmailMessage:
		msg = email.parser.BytesParser ( policy = email.policy.default ).parsebytes ( self.content )
		assert isinstance ( msg, email.message.EmailMessage )
		return msg

	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}({self.lines!r})'


class CapaResponse ( SuccessResponse ):
	def __init__ ( self, message: str, capa: Dict[str,str] ) -> None:
		self.capa = capa
		super().__init__ ( message )

	def __repr__ ( self ) -> str:
		cls = type ( self )
		capa_ = ', '.join ( [
			f'{k!r}: {v!r}' for k, v in sorted ( self.capa.items() )
		] )
		return f'{cls.__module__}.{cls.__name__}({self.ok!r}, {self.message!r}, capa={{{capa_}}})'


Result = Union[
	SuccessResponse, ErrorResponse, GreetingResponse, StatResponse,
	ListResponse, UidlResponse, RetrResponse, CapaResponse,
]


#endregion
#region ACCUMULATOR -----------------------------------------------------------

def _ascii ( line: bytes ) -> str:
	try:
		return b2s ( line )
	except UnicodeDecodeError as e:
		raise ProtocolError ( f'non-ascii data from server {line!r}' ) from e


def _number ( text: str, line: bytes ) -> int:
	try:
		return int ( text )
	except ValueError as e: # past sys.get_int_max_str_digits()
		raise ProtocolError ( f'invalid number from server {line[:80]!r}' ) from e


def _message_id ( text: str, line: bytes ) -> int:
	id = _number ( text, line )
	if id < 1:
		raise ProtocolError ( f'invalid message number from server {line!r}' )
	return id


def _unstuff ( line: bytes ) -> bytes:
	# RFC1939#3 byte-stuffing: a leading '.' in the body is sent as '..'
	return line[1:] if line.startswith ( b'..' ) else line


class ResponseAccumulator ( BaseAccumulator ):
	'''
	Folds the lines of one server reply into exactly one Result.

	The first line is the status line. A -ERR status always ends the
	exchange. A +OK status ends it for single-line commands, where any
	payload is parsed out of the status line itself. For multi-line
	commands the body lines are collected until the '.' terminator and
	then parsed according to the command.

	Lines are expected with their CRLF still attached.
	'''
	complete: bool
	result: Opt[Result]

	def __init__ ( self, command: Command ) -> None:
		self.command = command
		self.complete = False
		self.lines: List[bytes] = []
		self.result = None
		self._status: Opt[str] = None

	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}({self.command}, complete={self.complete!r}, lines={len(self.lines)!r})'

	def add_line ( self, line: BYTES ) -> None:
		assert not self.complete, f'{self!r} received a line after completion'
		line = bytes ( line )
		if not line.endswith ( b'\r\n' ):
			raise ProtocolError ( f'unterminated line from server {line!r}' )
		if not self.lines:
			self._add_status_line ( line )
		else:
			self._add_body_line ( line )

	def _finish ( self, result: Result ) -> None:
		self.result = result
		self.complete = True

	def _add_status_line ( self, line: bytes ) -> None:
		m = _r_status.fullmatch ( _ascii ( line[:-2] ) )
		if not m:
			raise ProtocolError ( f'malformed status line from server {line!r}' )
		marker, text = m.group ( 1 ), m.group ( 2 ) or ''
		self.lines.append ( line )
		if marker == '-ERR':
			self._finish ( ErrorResponse ( text ) )
		elif self.command in _multi_line_commands:
			self._status = text
		else:
			self._finish ( self._parse_status ( text, line ) )

	def _add_body_line ( self, line: bytes ) -> None:
		self.lines.append ( line )
		if line == TERMINATOR:
			assert self._status is not None
			body = [ _unstuff ( body_line ) for body_line in self.lines[1:-1] ]
			self._finish ( self._parse_body ( self._status, body ) )

	def _parse_status ( self, text: str, line: bytes ) -> Result:
		command = self.command
		if command is Command.GREETING:
			return GreetingResponse ( text )
		if command is Command.STAT:
			if not ( m := _r_two_numbers.fullmatch ( text ) ):
				raise ProtocolError ( f'malformed STAT response from server {line!r}' )
			return StatResponse ( text, _number ( m.group ( 1 ), line ), _number ( m.group ( 2 ), line ) )
		if command is Command.LIST_ONE:
			return ListResponse ( text, [ self._list_entry ( text, line ) ] )
		if command is Command.UIDL_ONE:
			return UidlResponse ( text, [ self._uidl_entry ( text, line ) ] )
		return SuccessResponse ( text )

	def _parse_body ( self, text: str, body: List[bytes] ) -> Result:
		command = self.command
		if command is Command.LIST_ALL:
			return ListResponse ( text, [
				self._list_entry ( _ascii ( line[:-2] ), line ) for line in body
			] )
		if command is Command.UIDL_ALL:
			return UidlResponse ( text, [
				self._uidl_entry ( _ascii ( line[:-2] ), line ) for line in body
			] )
		if command is Command.CAPA:
			capa: Dict[str,str] = {}
			for line in body:
				capa_name, *capa_params = _ascii ( line[:-2] ).strip().split ( ' ', 1 )
				if not capa_name:
					raise ProtocolError ( f'malformed capability from server {line!r}' )
				capa[capa_name.upper()] = capa_params[0].strip() if capa_params else ''
			return CapaResponse ( text, capa )
		assert command in ( Command.RETR, Command.TOP ), f'invalid {command=}'
		return RetrResponse ( text, [
			b2s ( line[:-2], 'utf-8', 'surrogateescape' ) for line in body
		] )

	@staticmethod
	def _list_entry ( text: str, line: bytes ) -> ListMessage:
		if not ( m := _r_two_numbers.fullmatch ( text ) ):
			raise ProtocolError ( f'malformed scan listing from server {line!r}' )
		return ListMessage ( _message_id ( m.group ( 1 ), line ), _number ( m.group ( 2 ), line ) )

	@staticmethod
	def _uidl_entry ( text: str, line: bytes ) -> UidlMessage:
		if not ( m := _r_number_token.fullmatch ( text ) ):
			raise ProtocolError ( f'malformed unique-id listing from server {line!r}' )
		return UidlMessage ( _message_id ( m.group ( 1 ), line ), m.group ( 2 ) )


client_util: ClientUtil[Command] = ClientUtil ( ResponseAccumulator )


def parse_transcript ( command: Command, data: BYTES ) -> Result:
	'''
	Parses a complete captured reply, ex:

	parse_transcript ( Command.LIST_ALL, b'+OK\\r\\n1 100\\r\\n.\\r\\n' )
	'''
	acc = ResponseAccumulator ( command )
	lines = bytes ( data ).split ( b'\r\n' )
	trailing = lines.pop()
	for line in lines:
		if acc.complete:
			raise ProtocolError ( f'unexpected data after {command} reply: {line!r}' )
		acc.add_line ( line + b'\r\n' )
	if trailing or not acc.complete:
		raise ProtocolError ( f'incomplete {command} reply (unterminated data: {trailing!r})' )
	assert acc.result is not None
	return acc.result


#endregion
#region EVENTS ----------------------------------------------------------------

class StartTlsBeginEvent ( Event ):
	pass


def apop_hash ( challenge: str, pwd: str ) -> str:
	return hashlib.md5 ( s2b ( f'{challenge}{pwd}', 'utf-8' ) ).hexdigest()


#endregion
#region REQUESTS --------------------------------------------------------------

def _check_arg ( name: str, value: str ) -> str:
	assert isinstance ( value, str ) and value and not _r_eol.search ( value ), f'invalid {name}={value!r}'
	return value


def _check_id ( id: int ) -> int:
	assert isinstance ( id, int ) and id >= 1, f'invalid message number {id=}'
	return id


class Request ( RequestT[ResponseType] ):
	def _client_protocol ( self, client: ClientProtocol ) -> RequestProtocolGenerator:
		assert isinstance ( client, Client )
		yield from self.client_protocol ( client )

	@abstractmethod
	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		cls = self.__class__
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.client_protocol()' )


class SimpleRequest ( Request[ResponseType] ):
	# one command line, one reply
	command: Command

	@abstractmethod
	def request_line ( self ) -> str:
		cls = self.__class__
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.request_line()' )

	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		yield from client_util.send_recv_done ( self.request_line(), self.command )


class GreetingRequest ( Request[GreetingResponse] ):
	responsecls = GreetingResponse

	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		yield from client_util.recv_done ( Command.GREETING )


class CapaRequest ( SimpleRequest[CapaResponse] ): # RFC2449
	responsecls = CapaResponse
	command = Command.CAPA

	def request_line ( self ) -> str:
		return 'CAPA\r\n'


class StartTlsRequest ( Request[SuccessResponse] ): # RFC2595 Using TLS with IMAP, POP3 and ACAP
	responsecls = SuccessResponse

	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		assert not client.tls, 'TLS is already active'
		response = yield from client_util.send_recv ( 'STLS\r\n', Command.STLS )
		if response.is_success():
			yield from StartTlsBeginEvent().go()
			client.tls = True
		raise response


class UserPassRequest ( Request[SuccessResponse] ):
	responsecls = SuccessResponse

	def __init__ ( self, uid: str, pwd: str ) -> None:
		self.uid = _check_arg ( 'uid', str ( uid ) )
		self.pwd = _check_arg ( 'pwd', str ( pwd ) )

	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}(uid={self.uid!r})'

	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		# two exchanges, PASS is only sent if USER was accepted
		response = yield from client_util.send_recv ( f'USER {self.uid}\r\n', Command.USER )
		if response.is_success():
			response = yield from client_util.send_recv (
				f'PASS {self.pwd}\r\n', Command.PASS, log_text = 'PASS ****',
			)
			client.authenticated = response.is_success()
		raise response


class ApopRequest ( Request[SuccessResponse] ):
	responsecls = SuccessResponse

	def __init__ ( self, uid: str, pwd: str, challenge: str ) -> None:
		assert ' ' not in uid, f'invalid {uid=}'
		assert challenge[0:1] == '<' and challenge[-1:] == '>', f'invalid {challenge=}'
		self.uid = _check_arg ( 'uid', uid )
		self.challenge = challenge
		self.digest = apop_hash ( challenge, pwd )

	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}(uid={self.uid!r})'

	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		response = yield from client_util.send_recv ( f'APOP {self.uid} {self.digest}\r\n', Command.APOP )
		client.authenticated = response.is_success()
		raise response


class StatRequest ( SimpleRequest[StatResponse] ):
	responsecls = StatResponse
	command = Command.STAT
	auth_required = True

	def request_line ( self ) -> str:
		return 'STAT\r\n'


class ListRequest ( SimpleRequest[ListResponse] ):
	responsecls = ListResponse
	auth_required = True

	def __init__ ( self, id: Opt[int] = None ) -> None:
		self.id = None if id is None else _check_id ( id )
		self.command = Command.LIST_ALL if id is None else Command.LIST_ONE

	def request_line ( self ) -> str:
		return 'LIST\r\n' if self.id is None else f'LIST {self.id}\r\n'


class UidlRequest ( SimpleRequest[UidlResponse] ):
	responsecls = UidlResponse
	auth_required = True

	def __init__ ( self, id: Opt[int] = None ) -> None:
		self.id = None if id is None else _check_id ( id )
		self.command = Command.UIDL_ALL if id is None else Command.UIDL_ONE

	def request_line ( self ) -> str:
		return 'UIDL\r\n' if self.id is None else f'UIDL {self.id}\r\n'


class RetrRequest ( SimpleRequest[RetrResponse] ):
	responsecls = RetrResponse
	command = Command.RETR
	auth_required = True

	def __init__ ( self, id: int ) -> None:
		self.id = _check_id ( id )

	def request_line ( self ) -> str:
		return f'RETR {self.id}\r\n'


class TopRequest ( SimpleRequest[RetrResponse] ):
	responsecls = RetrResponse
	command = Command.TOP
	auth_required = True

	def __init__ ( self, id: int, lines: int ) -> None:
		assert isinstance ( lines, int ) and lines >= 0, f'invalid {lines=}'
		self.id = _check_id ( id )
		self.lines = lines

	def request_line ( self ) -> str:
		return f'TOP {self.id} {self.lines}\r\n'


class DeleRequest ( SimpleRequest[SuccessResponse] ):
	responsecls = SuccessResponse
	command = Command.DELE
	auth_required = True

	def __init__ ( self, id: int ) -> None:
		self.id = _check_id ( id )

	def request_line ( self ) -> str:
		return f'DELE {self.id}\r\n'


class RsetRequest ( SimpleRequest[SuccessResponse] ):
	responsecls = SuccessResponse
	command = Command.RSET
	auth_required = True

	def request_line ( self ) -> str:
		return 'RSET\r\n'


class NoOpRequest ( SimpleRequest[SuccessResponse] ):
	responsecls = SuccessResponse
	command = Command.NOOP
	auth_required = True

	def request_line ( self ) -> str:
		return 'NOOP\r\n'


class QuitRequest ( Request[SuccessResponse] ):
	responsecls = SuccessResponse

	def client_protocol ( self, client: Client ) -> RequestProtocolGenerator:
		response = yield from client_util.send_recv ( 'QUIT\r\n', Command.QUIT )
		if response.is_success():
			client.authenticated = False
		raise response

#endregion
#region CLIENT ----------------------------------------------------------------

class Client ( ClientProtocol ):
	_MAXLINE = 8192

#endregion
