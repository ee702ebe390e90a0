from __future__ import annotations

# python imports:
import ssl
import trio # pip install trio
from typing import Optional as Opt, Type

# pop3_proto imports:
import pop3_async
from transport_trio import TrioTransport as Transport

class Client ( pop3_async.Client ):
	@classmethod
	async def connect ( cls: Type[Client],
		hostname: str,
		port: int,
		tls: bool,
		*,
		ssl_context: Opt[ssl.SSLContext] = None,
		timeout: Opt[float] = Transport.timeout,
	) -> Client:
		transport = await Transport.connect ( hostname, port, tls,
			ssl_context = ssl_context,
			timeout = timeout,
		)
		self = cls ( transport, tls, hostname )
		await self._expect_greeting()
		return self

	@classmethod
	def from_stream ( cls: Type[Client],
		stream: trio.abc.Stream,
		tls: bool,
		server_hostname: str,
		*,
		ssl_context: Opt[ssl.SSLContext] = None,
		timeout: Opt[float] = Transport.timeout,
	) -> Client:
		transport = Transport ( stream, ssl_context = ssl_context, timeout = timeout )
		return cls ( transport, tls, server_hostname )
