# system imports:
import logging
from typing import Optional as Opt, Union

# pop3_proto imports:
from event_handling import SyncClient
import pop3_proto as proto

logger = logging.getLogger ( __name__ )


class Client ( SyncClient ):
	'''
	Blocking POP3 client. Every method sends one command and blocks until
	the whole reply has been read.

	A -ERR reply is returned as a proto.ErrorResponse, check
	.is_success() or isinstance() on the result. Transport failures
	raise proto.Closed, malformed replies raise proto.ProtocolError and
	mailbox commands issued before a successful login raise
	proto.AuthenticationRequired.
	'''
	protocls = proto.Client

	def greeting ( self ) -> Union[proto.GreetingResponse,proto.ErrorResponse]:
		return self._request ( proto.GreetingRequest() ) # type: ignore

	def capa ( self ) -> Union[proto.CapaResponse,proto.ErrorResponse]:
		return self._request ( proto.CapaRequest() ) # type: ignore

	def starttls ( self ) -> Union[proto.SuccessResponse,proto.ErrorResponse]:
		return self._request ( proto.StartTlsRequest() ) # type: ignore

	def login ( self, uid: str, pwd: str ) -> Union[proto.SuccessResponse,proto.ErrorResponse]:
		return self._request ( proto.UserPassRequest ( uid, pwd ) ) # type: ignore

	def apop ( self, uid: str, pwd: str, challenge: str ) -> Union[proto.SuccessResponse,proto.ErrorResponse]:
		return self._request ( proto.ApopRequest ( uid, pwd, challenge ) ) # type: ignore

	def stat ( self ) -> Union[proto.StatResponse,proto.ErrorResponse]:
		return self._request ( proto.StatRequest() ) # type: ignore

	def list ( self, id: Opt[int] = None ) -> Union[proto.ListResponse,proto.ErrorResponse]:
		return self._request ( proto.ListRequest ( id ) ) # type: ignore

	def uidl ( self, id: Opt[int] = None ) -> Union[proto.UidlResponse,proto.ErrorResponse]:
		return self._request ( proto.UidlRequest ( id ) ) # type: ignore

	def retr ( self, id: int ) -> Union[proto.RetrResponse,proto.ErrorResponse]:
		return self._request ( proto.RetrRequest ( id ) ) # type: ignore

	def top ( self, id: int, lines: int ) -> Union[proto.RetrResponse,proto.ErrorResponse]:
		return self._request ( proto.TopRequest ( id, lines ) ) # type: ignore

	def dele ( self, id: int ) -> Union[proto.SuccessResponse,proto.ErrorResponse]:
		return self._request ( proto.DeleRequest ( id ) ) # type: ignore

	def rset ( self ) -> Union[proto.SuccessResponse,proto.ErrorResponse]:
		return self._request ( proto.RsetRequest() ) # type: ignore

	def noop ( self ) -> Union[proto.SuccessResponse,proto.ErrorResponse]:
		return self._request ( proto.NoOpRequest() ) # type: ignore

	def quit ( self ) -> Union[proto.SuccessResponse,proto.ErrorResponse]:
		return self._request ( proto.QuitRequest() ) # type: ignore

	def on_StartTlsBeginEvent ( self, event: proto.StartTlsBeginEvent ) -> None:
		self.transport.starttls_client ( self.server_hostname )

	def _expect_greeting ( self ) -> proto.GreetingResponse:
		# the server speaks first, a -ERR greeting means the connection was refused
		log = logger.getChild ( 'Client._expect_greeting' )
		try:
			r = self.greeting()
			if not isinstance ( r, proto.GreetingResponse ):
				log.warning ( f'server refused connection: {r!r}' )
				raise r
			return r
		except BaseException:
			self.close()
			raise
