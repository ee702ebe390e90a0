from __future__ import annotations

# python imports:
import socket
import ssl
from typing import Optional as Opt, Type

# pop3_proto imports:
import pop3_sync
from transport_socket import SocketTransport as Transport

class Client ( pop3_sync.Client ):
	@classmethod
	def connect ( cls: Type[Client],
		hostname: str,
		port: int,
		tls: bool,
		*,
		ssl_context: Opt[ssl.SSLContext] = None,
		timeout: Opt[float] = Transport.timeout,
	) -> Client:
		'''
		open the connection and read the greeting, ex:

		with pop3_socket.Client.connect ( 'pop.example.com', 995, True ) as cli:
			cli.login ( 'zaphod', 'beeblebrox' )
		'''
		transport = Transport.connect ( hostname, port, tls,
			ssl_context = ssl_context,
			timeout = timeout,
		)
		self = cls ( transport, tls, hostname )
		self._expect_greeting()
		return self

	@classmethod
	def from_socket ( cls: Type[Client],
		sock: socket.socket,
		tls: bool,
		server_hostname: str,
		*,
		ssl_context: Opt[ssl.SSLContext] = None,
		timeout: Opt[float] = Transport.timeout,
	) -> Client:
		transport = Transport ( sock, ssl_context = ssl_context, timeout = timeout )
		return cls ( transport, tls, server_hostname )
