# system imports:
import logging
from typing import Optional as Opt, Union

# pop3_proto imports:
from event_handling import AsyncClient
import pop3_proto as proto

logger = logging.getLogger ( __name__ )


class Client ( AsyncClient ):
	protocls = proto.Client

	async def greeting ( self ) -> Union[proto.GreetingResponse,proto.ErrorResponse]:
		return await self._request ( proto.GreetingRequest() ) # type: ignore

	async def capa ( self ) -> Union[proto.CapaResponse,proto.ErrorResponse]:
		#log = logger.getChild ( 'Client.capa' )
		return await self._request ( proto.CapaRequest() ) # type: ignore

	async def starttls ( self ) -> Union[proto.SuccessResponse,proto.ErrorResponse]:
		return await self._request ( proto.StartTlsRequest() ) # type: ignore

	async def login ( self, uid: str, pwd: str ) -> Union[proto.SuccessResponse,proto.ErrorResponse]:
		return await self._request ( proto.UserPassRequest ( uid, pwd ) ) # type: ignore

	async def apop ( self, uid: str, pwd: str, challenge: str ) -> Union[proto.SuccessResponse,proto.ErrorResponse]:
		return await self._request ( proto.ApopRequest ( uid, pwd, challenge ) ) # type: ignore

	async def stat ( self ) -> Union[proto.StatResponse,proto.ErrorResponse]:
		return await self._request ( proto.StatRequest() ) # type: ignore

	async def list ( self, id: Opt[int] = None ) -> Union[proto.ListResponse,proto.ErrorResponse]:
		return await self._request ( proto.ListRequest ( id ) ) # type: ignore

	async def uidl ( self, id: Opt[int] = None ) -> Union[proto.UidlResponse,proto.ErrorResponse]:
		return await self._request ( proto.UidlRequest ( id ) ) # type: ignore

	async def retr ( self, id: int ) -> Union[proto.RetrResponse,proto.ErrorResponse]:
		return await self._request ( proto.RetrRequest ( id ) ) # type: ignore

	async def top ( self, id: int, lines: int ) -> Union[proto.RetrResponse,proto.ErrorResponse]:
		return await self._request ( proto.TopRequest ( id, lines ) ) # type: ignore

	async def dele ( self, id: int ) -> Union[proto.SuccessResponse,proto.ErrorResponse]:
		return await self._request ( proto.DeleRequest ( id ) ) # type: ignore

	async def rset ( self ) -> Union[proto.SuccessResponse,proto.ErrorResponse]:
		return await self._request ( proto.RsetRequest() ) # type: ignore

	async def noop ( self ) -> Union[proto.SuccessResponse,proto.ErrorResponse]:
		return await self._request ( proto.NoOpRequest() ) # type: ignore

	async def quit ( self ) -> Union[proto.SuccessResponse,proto.ErrorResponse]:
		return await self._request ( proto.QuitRequest() ) # type: ignore

	async def on_StartTlsBeginEvent ( self, event: proto.StartTlsBeginEvent ) -> None:
		await self.transport.starttls_client ( self.server_hostname )

	async def _expect_greeting ( self ) -> proto.GreetingResponse:
		log = logger.getChild ( 'Client._expect_greeting' )
		try:
			r = await self.greeting()
			if not isinstance ( r, proto.GreetingResponse ):
				log.warning ( f'server refused connection: {r!r}' )
				raise r
			return r
		except BaseException:
			await self.close()
			raise
