from __future__ import annotations

# python imports:
import contextlib
import logging
import math
import ssl
import trio # pip install trio
from typing import Iterator, Optional as Opt, Type

# pop3_proto imports:
from transport import AsyncTransport
from util import BYTES

logger = logging.getLogger ( __name__ )


@contextlib.contextmanager
def _broken_is_oserror() -> Iterator[None]:
	try:
		yield
	except ( trio.BrokenResourceError, trio.ClosedResourceError ) as e:
		raise ConnectionError ( repr ( e ) ) from e


class TrioTransport ( AsyncTransport ):
	happy_eyeballs_delay: float = 0.25 # this is the same as trio's default circa version 0.16.0
	stream: trio.abc.Stream

	def __init__ ( self, stream: trio.abc.Stream, *,
		ssl_context: Opt[ssl.SSLContext] = None,
		timeout: Opt[float] = AsyncTransport.timeout,
	) -> None:
		self.stream = stream
		self.ssl_context = ssl_context
		self.timeout = timeout

	@classmethod
	async def connect ( cls: Type[TrioTransport],
		hostname: str,
		port: int,
		tls: bool,
		*,
		ssl_context: Opt[ssl.SSLContext] = None,
		timeout: Opt[float] = AsyncTransport.timeout,
	) -> TrioTransport:
		#log = logger.getChild ( 'TrioTransport.connect' )
		stream = await trio.open_tcp_stream ( hostname, port,
			happy_eyeballs_delay = cls.happy_eyeballs_delay,
		)
		self = cls ( stream, ssl_context = ssl_context, timeout = timeout )
		if tls:
			await self.starttls_client ( hostname )
		return self

	def _deadline ( self ) -> float:
		return math.inf if self.timeout is None else self.timeout

	async def read ( self ) -> bytes:
		#log = logger.getChild ( 'TrioTransport.read' )
		with trio.move_on_after ( self._deadline() ):
			with _broken_is_oserror():
				return await self.stream.receive_some()
		raise TimeoutError ( f'{type(self).__module__}.{type(self).__name__} timeout waiting to read data' )

	async def write ( self, data: BYTES ) -> None:
		#log = logger.getChild ( 'TrioTransport.write' )
		with trio.move_on_after ( self._deadline() ):
			with _broken_is_oserror():
				await self.stream.send_all ( data )
			return
		raise TimeoutError ( f'{type(self).__module__}.{type(self).__name__} timeout waiting to write {len(data)} bytes' )

	async def starttls_client ( self, server_hostname: str ) -> None:
		context = self.ssl_context_or_default_client()

		self.stream = trio.SSLStream (
			self.stream,
			ssl_context = context,
			server_hostname = server_hostname,
		)

	async def close ( self ) -> None:
		#log = logger.getChild ( 'TrioTransport.close' )
		with trio.move_on_after ( 0.05 ):
			await self.stream.aclose()
