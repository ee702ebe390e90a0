from __future__ import annotations

# python imports:
from abc import ABCMeta, abstractmethod
import logging
from typing import (
	Callable, Generator, Generic, Iterator, Optional as Opt,
	Sequence as Seq, Type, TypeVar,
)

# pop3_proto imports:
from util import bytes_types, BYTES, b2s_log, s2b

logger = logging.getLogger ( __name__ )


class Event ( Exception ):
	exc: Opt[BaseException] = None

	def go ( self ) -> Iterator[Event]:
		yield self

	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}()'


class Closed ( Exception ):
	def __init__ ( self, reason: str = '' ) -> None:
		super().__init__ ( reason or '(none given)' )


class ProtocolError ( Exception ):
	pass


class AuthenticationRequired ( Exception ):
	pass


ResponseType = TypeVar ( 'ResponseType', bound = 'BaseResponse' )
class BaseResponse ( Exception, metaclass = ABCMeta ):
	@abstractmethod
	def is_success ( self ) -> bool:
		cls = self.__class__
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.is_success()' )


RequestProtocolGenerator = Generator[Event,None,None]


class BaseRequest ( metaclass = ABCMeta ):
	# 1) client uses __init__() to construct request
	# 2) _client_protocol() implements the client-side state machine,
	#    it must raise its response (success or failure) when done
	auth_required: bool = False
	base_response: Opt[BaseResponse] = None

	def __repr__ ( self ) -> str:
		cls = type ( self )
		return f'{cls.__module__}.{cls.__name__}()'

	@abstractmethod
	def _client_protocol ( self, client: ClientProtocol ) -> RequestProtocolGenerator:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}._client_protocol()' )


class RequestT ( BaseRequest, Generic[ResponseType] ):
	responsecls: Type[ResponseType]

	@property
	def response ( self ) -> BaseResponse:
		response = self.base_response
		assert response is not None, f'{self!r} has no response yet'
		assert (
			not response.is_success()
		or
			isinstance ( response, self.responsecls )
		), f'invalid {response=}'
		return response
RequestType = RequestT[ResponseType]


class NeedDataEvent ( Event ):
	data: Opt[bytes] = None

	def reset ( self ) -> NeedDataEvent:
		self.data = None
		return self

	def go ( self ) -> Iterator[Event]:
		self.reset()
		yield from super().go()


class SendDataEvent ( Event ):

	def __init__ ( self, *chunks: bytes, log_text: Opt[str] = None ) -> None:
		self.chunks: Seq[bytes] = chunks
		self.log_text = log_text

	def __repr__ ( self ) -> str:
		cls = type ( self )
		if self.log_text is not None:
			return f'{cls.__module__}.{cls.__name__}(log_text={self.log_text!r})'
		return f'{cls.__module__}.{cls.__name__}(chunks={self.chunks!r})'


class BaseAccumulator ( metaclass = ABCMeta ):
	# folds the lines of one reply into a single response
	complete: bool = False
	result: Opt[BaseResponse] = None

	@abstractmethod
	def add_line ( self, line: BYTES ) -> None:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}.add_line()' )


class Protocol ( metaclass = ABCMeta ):
	_buf: bytes = b''
	request: Opt[BaseRequest] = None
	request_protocol: Opt[RequestProtocolGenerator] = None
	need_data: Opt[NeedDataEvent] = None
	tls: bool # whether or not the connection is currently encrypted
	_MAXLINE: int = 8192

	def __init__ ( self, tls: bool ) -> None:
		self.tls = tls

	def receive ( self, data: BYTES ) -> Iterator[Event]:
		log = logger.getChild ( 'Protocol.receive' )
		assert isinstance ( data, bytes_types ), f'invalid {data=}'
		if not data: # EOF indicator
			self.abort()
			if self._buf:
				buf, self._buf = self._buf, b''
				log.debug ( f'discarding partial line at EOF: {buf[:80]!r}' )
				raise Closed ( 'EOF in the middle of a line' )
			raise Closed ( 'EOF' )
		self._buf += data
		start = 0
		try:
			while ( eol := self._buf.find ( b'\r\n', start ) ) >= 0:
				end = eol + 2
				if end - start >= self._MAXLINE:
					self.abort()
					raise ProtocolError ( 'maximum line length exceeded' )
				line = memoryview ( self._buf )[start:end]
				start = end
				yield from self._receive_line ( line )
		finally:
			if start:
				self._buf = self._buf[start:]
		if len ( self._buf ) >= self._MAXLINE:
			self.abort()
			raise ProtocolError ( 'maximum line length exceeded' )

	def abort ( self ) -> None:
		# forget the request in flight
		self.request = None
		self.request_protocol = None
		self.need_data = None

	@abstractmethod
	def _receive_line ( self, line: BYTES ) -> Iterator[Event]:
		cls = type ( self )
		raise NotImplementedError ( f'{cls.__module__}.{cls.__name__}._receive_line()' )

	def _run_protocol ( self ) -> Iterator[Event]:
		log = logger.getChild ( 'Protocol._run_protocol' )
		assert self.request is not None, f'invalid {self.request=}'
		assert self.request_protocol is not None, f'invalid {self.request_protocol=}'
		try:
			while True:
				event = next ( self.request_protocol )
				log.debug ( f'{event=}' )
				if isinstance ( event, NeedDataEvent ):
					if self.request.base_response is not None:
						log.warning ( f'INTERNAL ERROR - {self.request!r} pushed NeedDataEvent but has a response set - this can cause upstack deadlock ({self.request.base_response!r})' )
						self.request.base_response = None
					self.need_data = event.reset()
					return
				else:
					yield event
					if event.exc is not None:
						exc, event.exc = event.exc, None
						self.request_protocol.throw ( exc )
		except BaseResponse as response:
			request, self.request = self.request, None
			self.request_protocol = None
			assert isinstance ( request, BaseRequest )
			request.base_response = response
		except ( Closed, ProtocolError ):
			self.abort()
			raise
		except OSError as e:
			self.abort()
			raise Closed ( repr ( e ) ) from e
		except StopIteration:
			# client protocol *must* raise its response before exiting
			# if not, Client._request() will get stuck waiting for data that never arrives
			request, self.request = self.request, None
			self.request_protocol = None
			log.warning (
				f'INTERNAL ERROR:'
				f' {type(request).__module__}.{type(request).__name__}'
				f'._client_protocol() exit w/o response - this can cause upstack deadlock'
			)
			raise Closed ( 'INTERNAL ERROR - CLIENT PROTOCOLS MUST THROW THEIR RESPONSE' )
		except Exception as e:
			self.abort()
			log.exception ( 'internal protocol error:' )
			raise Closed ( repr ( e ) ) from e


class ClientProtocol ( Protocol ):
	authenticated: bool = False

	def send ( self, request: BaseRequest ) -> Iterator[Event]:
		log = logger.getChild ( 'ClientProtocol.send' )
		assert self.request is None, f'trying to send {request=} but not finished processing {self.request=}'
		if request.auth_required and not self.authenticated:
			raise AuthenticationRequired ( f'{request!r} is not available before login' )
		request.base_response = None
		self.request = request
		self.request_protocol = request._client_protocol ( self )
		log.debug ( f'set {self.request=}' )
		yield from self._run_protocol()

	def _receive_line ( self, line: BYTES ) -> Iterator[Event]:
		if not self.need_data:
			self.abort()
			raise ProtocolError ( f'not expecting data at this time ({b2s_log(line)!r})' )
		self.need_data.data = bytes ( line )
		self.need_data = None
		yield from self._run_protocol()

#region client protocol helpers

CommandType = TypeVar ( 'CommandType' )
ResponseGenerator = Generator[Event,None,BaseResponse]

class ClientUtil ( Generic[CommandType] ):
	def __init__ ( self,
		accumulator: Callable[[CommandType],BaseAccumulator],
	) -> None:
		self.accumulator = accumulator

	def send ( self, line: str, log_text: Opt[str] = None ) -> Iterator[Event]:
		assert line.endswith ( '\r\n' ) and '\r' not in line[:-2] and '\n' not in line[:-2], f'invalid {line=}'
		yield from SendDataEvent ( s2b ( line, 'utf-8' ), log_text = log_text ).go()

	def recv ( self, command: CommandType ) -> ResponseGenerator:
		acc = self.accumulator ( command )
		event = NeedDataEvent()
		while not acc.complete:
			yield from event.go()
			acc.add_line ( event.data or b'' )
		assert acc.result is not None, f'{acc!r} completed without a result'
		return acc.result

	def send_recv ( self, line: str, command: CommandType, log_text: Opt[str] = None ) -> ResponseGenerator:
		yield from self.send ( line, log_text )
		return ( yield from self.recv ( command ) )

	def recv_done ( self, command: CommandType ) -> RequestProtocolGenerator:
		response = yield from self.recv ( command )
		raise response

	def send_recv_done ( self, line: str, command: CommandType ) -> RequestProtocolGenerator:
		yield from self.send ( line )
		yield from self.recv_done ( command )

#endregion client protocol helpers
