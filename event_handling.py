from __future__ import annotations

# python imports:
from abc import ABCMeta
import contextlib
import logging
from types import TracebackType
from typing import Iterator, Optional as Opt, Type, TypeVar

# pop3_proto imports:
from base_proto import (
	BaseResponse, RequestType, ResponseType, Event, SendDataEvent,
	ClientProtocol, Closed,
)
from transport import SyncTransport, AsyncTransport
from util import b2s_log

logger = logging.getLogger ( __name__ )

SyncClientType = TypeVar ( 'SyncClientType', bound = 'SyncClient' )
AsyncClientType = TypeVar ( 'AsyncClientType', bound = 'AsyncClient' )


@contextlib.contextmanager
def _event_exception_safety ( event: Event ) -> Iterator[None]:
	try:
		yield
	except Exception as e:
		event.exc = e


@contextlib.contextmanager
def close_if_oserror ( proto: Opt[ClientProtocol] = None ) -> Iterator[None]:
	try:
		yield
	except OSError as e: # includes TimeoutError and ssl.SSLError
		if proto is not None:
			proto.abort()
		raise Closed ( repr ( e ) ) from e


def _log_sent ( event: SendDataEvent ) -> None:
	log = logger.getChild ( 'on_SendDataEvent' )
	if event.log_text is not None:
		log.debug ( f'C>{event.log_text}' )
	else:
		for chunk in event.chunks:
			log.debug ( f'C>{b2s_log(chunk)}' )


class SyncEventHandler:
	transport: SyncTransport

	def on_SendDataEvent ( self, event: SendDataEvent ) -> None:
		_log_sent ( event )
		for chunk in event.chunks:
			self.transport.write ( chunk )

	def _on_event ( self, event: Event ) -> None:
		#log = logger.getChild ( 'SyncEventHandler._on_event' )
		with _event_exception_safety ( event ):
			func = getattr ( self, f'on_{type(event).__name__}' )
			func ( event )

	def close ( self ) -> None:
		self.transport.close()


class AsyncEventHandler:
	transport: AsyncTransport

	async def on_SendDataEvent ( self, event: SendDataEvent ) -> None:
		_log_sent ( event )
		for chunk in event.chunks:
			await self.transport.write ( chunk )

	async def _on_event ( self, event: Event ) -> None:
		#log = logger.getChild ( 'AsyncEventHandler._on_event' )
		with _event_exception_safety ( event ):
			func = getattr ( self, f'on_{type(event).__name__}' )
			await func ( event )

	async def close ( self ) -> None:
		await self.transport.close()


class Client ( metaclass = ABCMeta ):
	protocls: Type[ClientProtocol]
	proto: ClientProtocol
	server_hostname: str

	@property
	def authenticated ( self ) -> bool:
		return self.proto.authenticated

	@property
	def tls ( self ) -> bool:
		return self.proto.tls


class SyncClient ( SyncEventHandler, Client ):
	def __init__ ( self,
		transport: SyncTransport,
		tls: bool,
		server_hostname: str,
	) -> None:
		self.transport = transport
		self.server_hostname = server_hostname
		self.proto = self.protocls ( tls )

	def __enter__ ( self: SyncClientType ) -> SyncClientType:
		return self

	def __exit__ ( self,
		exc_type: Opt[Type[BaseException]],
		exc_value: Opt[BaseException],
		traceback: Opt[TracebackType],
	) -> None:
		self.close()

	def _request ( self, request: RequestType[ResponseType] ) -> BaseResponse:
		log = logger.getChild ( 'SyncClient._request' )
		for event in self.proto.send ( request ):
			self._on_event ( event )
		while request.base_response is None:
			with close_if_oserror ( self.proto ):
				data: bytes = self.transport.read()
			log.debug ( f'S>{b2s_log(data)}' )
			for event in self.proto.receive ( data ):
				self._on_event ( event )
		return request.response


class AsyncClient ( AsyncEventHandler, Client ):
	def __init__ ( self,
		transport: AsyncTransport,
		tls: bool,
		server_hostname: str,
	) -> None:
		self.transport = transport
		self.server_hostname = server_hostname
		self.proto = self.protocls ( tls )

	async def __aenter__ ( self: AsyncClientType ) -> AsyncClientType:
		return self

	async def __aexit__ ( self,
		exc_type: Opt[Type[BaseException]],
		exc_value: Opt[BaseException],
		traceback: Opt[TracebackType],
	) -> None:
		await self.close()

	async def _request ( self, request: RequestType[ResponseType] ) -> BaseResponse:
		log = logger.getChild ( 'AsyncClient._request' )
		for event in self.proto.send ( request ):
			await self._on_event ( event )
		while request.base_response is None:
			with close_if_oserror ( self.proto ):
				data: bytes = await self.transport.read()
			log.debug ( f'S>{b2s_log(data)}' )
			for event in self.proto.receive ( data ):
				await self._on_event ( event )
		return request.response
