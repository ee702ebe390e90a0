from __future__ import annotations

# python imports:
import logging
import socket
import ssl
from typing import Optional as Opt, Type

# pop3_proto imports:
from transport import SyncTransport
from util import BYTES

logger = logging.getLogger ( __name__ )


class SocketTransport ( SyncTransport ):
	sock: socket.socket

	def __init__ ( self, sock: socket.socket, *,
		ssl_context: Opt[ssl.SSLContext] = None,
		timeout: Opt[float] = SyncTransport.timeout,
	) -> None:
		self.sock = sock
		self.ssl_context = ssl_context
		self.timeout = timeout
		self.sock.settimeout ( timeout )

	@classmethod
	def connect ( cls: Type[SocketTransport],
		hostname: str,
		port: int,
		tls: bool,
		*,
		ssl_context: Opt[ssl.SSLContext] = None,
		timeout: Opt[float] = SyncTransport.timeout,
	) -> SocketTransport:
		log = logger.getChild ( 'SocketTransport.connect' )

		for family, type_, proto, _, address in socket.getaddrinfo ( hostname, port, type = socket.SOCK_STREAM ):
			sock = socket.socket ( family, type_, proto )
			sock.settimeout ( timeout )
			try:
				sock.connect ( address )
			except OSError as e:
				log.warning ( f'Error connecting to {address=}: {e!r}' )
				sock.close()
				continue
			else:
				self = cls ( sock, ssl_context = ssl_context, timeout = timeout )
				if tls:
					self.starttls_client ( hostname )
				return self
		raise ConnectionError ( f'Unable to connect to {hostname=} {port=}' )

	def read ( self ) -> bytes:
		#log = logger.getChild ( 'SocketTransport.read' )
		return self.sock.recv ( 4096 )

	def write ( self, data: BYTES ) -> None:
		#log = logger.getChild ( 'SocketTransport.write' )
		self.sock.sendall ( data )

	def starttls_client ( self, server_hostname: str ) -> None:
		context = self.ssl_context_or_default_client()

		self.sock = context.wrap_socket (
			self.sock,
			server_hostname = server_hostname,
		)

	def close ( self ) -> None:
		#log = logger.getChild ( 'SocketTransport.close' )
		self.sock.close()
