# system imports:
import logging
from pathlib import Path
import sys
import trio # pip install trio
import trio.testing
from typing import List, Sequence as Seq, Tuple
import unittest

if __name__ == '__main__': # pragma: no cover
	sys.path.append ( str ( Path ( __file__ ).parent.parent.absolute() ) )

# pop3_proto imports:
import pop3_proto as proto
import pop3_trio

logger = logging.getLogger ( __name__ )


async def scripted_server (
	stream: trio.abc.Stream,
	greeting: bytes,
	script: Seq[Tuple[str,Seq[bytes]]],
	received: List[str],
) -> None:
	# each reply is sent as the given chunks to exercise reassembly
	log = logger.getChild ( 'scripted_server' )
	buf = b''
	await stream.send_all ( greeting )
	try:
		for expected, chunks in script:
			while b'\r\n' not in buf:
				data = await stream.receive_some()
				if not data:
					log.debug ( 'client hung up' )
					return
				buf += data
			line, buf = buf.split ( b'\r\n', 1 )
			received.append ( line.decode ( 'us-ascii' ) )
			assert line.decode ( 'us-ascii' ) == expected, f'expected {expected!r} got {line!r}'
			for chunk in chunks:
				await stream.send_all ( chunk )
	finally:
		await stream.aclose()


class Tests ( unittest.TestCase ):
	def test_client ( self ) -> None:
		test = self
		self.maxDiff = None
		received: List[str] = []

		async def _test() -> None:
			thing1, thing2 = trio.testing.memory_stream_pair()

			async def client_task ( stream: trio.abc.Stream ) -> None:
				cli = pop3_trio.Client.from_stream ( stream, False, 'milliways.local', timeout = 5.0 )
				async with cli:
					r1 = await cli.greeting()
					test.assertEqual (
						repr ( r1 ),
						"pop3_proto.GreetingResponse(True, 'POP3 server ready <1896.697170952@dbc.mtview.ca.us>')",
					)

					with test.assertRaises ( proto.AuthenticationRequired ):
						await cli.retr ( 1 )

					test.assertTrue ( ( await cli.login ( 'mrose', 'tanstaaf' ) ).is_success() )
					test.assertTrue ( cli.authenticated )
					test.assertEqual ( repr ( await cli.stat() ), 'pop3_proto.StatResponse(count=2, octets=320)' )
					test.assertEqual ( repr ( await cli.list() ), 'pop3_proto.ListResponse([(1, 120), (2, 200)])' )
					test.assertEqual ( repr ( await cli.list ( 2 ) ), 'pop3_proto.ListResponse([(2, 200)])' )
					test.assertEqual (
						repr ( await cli.uidl() ),
						"pop3_proto.UidlResponse([(1, 'whqtswO00WBw418f9t5JxYwZ'), (2, 'QhdPYR:00WBw1Ph7x7')])",
					)
					test.assertEqual ( repr ( await cli.uidl ( 9 ) ), "pop3_proto.ErrorResponse(False, 'no such message')" )
					test.assertEqual ( repr ( await cli.retr ( 1 ) ), "pop3_proto.RetrResponse(['Hello', 'World'])" )
					test.assertTrue ( ( await cli.dele ( 1 ) ).is_success() )
					test.assertTrue ( ( await cli.noop() ).is_success() )
					test.assertTrue ( ( await cli.rset() ).is_success() )
					test.assertEqual ( repr ( await cli.quit() ), "pop3_proto.SuccessResponse(True, 'bye')" )

			async with trio.open_nursery() as nursery:
				nursery.start_soon ( client_task, thing1 )
				nursery.start_soon ( scripted_server, thing2,
					b'+OK POP3 server ready <1896.697170952@dbc.mtview.ca.us>\r\n',
					[
						( 'USER mrose', [ b'+OK\r\n' ] ),
						( 'PASS tanstaaf', [ b'+OK maildrop locked and ready\r\n' ] ),
						( 'STAT', [ b'+OK 2', b' 320\r', b'\n' ] ),
						( 'LIST', [ b'+OK\r\n1 120\r\n', b'2 200\r\n.', b'\r\n' ] ),
						( 'LIST 2', [ b'+OK 2 200\r\n' ] ),
						( 'UIDL', [ b'+OK\r\n1 whqtswO00WBw418f9t5JxYwZ\r\n2 QhdPYR:00WBw1Ph7x7\r\n.\r\n' ] ),
						( 'UIDL 9', [ b'-ERR no such message\r\n' ] ),
						( 'RETR 1', [ b'+OK\r\nHel', b'lo\r\nWorld\r\n.\r\n' ] ),
						( 'DELE 1', [ b'+OK\r\n' ] ),
						( 'NOOP', [ b'+OK\r\n' ] ),
						( 'RSET', [ b'+OK\r\n' ] ),
						( 'QUIT', [ b'+OK bye\r\n' ] ),
					],
					received,
				)

		trio.run ( _test )
		self.assertEqual ( received[:3], [ 'USER mrose', 'PASS tanstaaf', 'STAT' ] )
		self.assertEqual ( received[-1], 'QUIT' )

	def test_greeting_refused ( self ) -> None:
		test = self

		async def _test() -> None:
			thing1, thing2 = trio.testing.memory_stream_pair()
			await thing2.send_all ( b'-ERR go away\r\n' )
			cli = pop3_trio.Client.from_stream ( thing1, False, 'milliways.local' )
			with test.assertRaises ( proto.ErrorResponse ):
				await cli._expect_greeting()

		trio.run ( _test )

	def test_hangup ( self ) -> None:
		test = self

		async def _test() -> None:
			thing1, thing2 = trio.testing.memory_stream_pair()
			await thing2.send_all ( b'+OK\r\n' )
			cli = pop3_trio.Client.from_stream ( thing1, False, 'milliways.local', timeout = 5.0 )
			await cli.greeting()
			await thing2.aclose()
			with test.assertRaises ( proto.Closed ):
				await cli.login ( 'mrose', 'tanstaaf' )
			await cli.close()

		trio.run ( _test )

	def test_timeout ( self ) -> None:
		test = self

		async def _test() -> None:
			thing1, thing2 = trio.testing.memory_stream_pair()
			await thing2.send_all ( b'+OK\r\n' )
			cli = pop3_trio.Client.from_stream ( thing1, False, 'milliways.local', timeout = 0.05 )
			await cli.greeting()
			with test.assertRaises ( proto.Closed ):
				await cli.capa()
			test.assertIsNone ( cli.proto.request )
			with test.assertRaises ( proto.Closed ):
				await cli.capa()
			test.assertIsNone ( cli.proto.request )
			await cli.close()

		trio.run ( _test )

if __name__ == '__main__':
	logging.basicConfig (
		level = logging.DEBUG,
	)
	unittest.main()
