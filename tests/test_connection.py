import asyncio
import unittest

from fakes import BufferTransport, FakeStatusServer, StaticResolver, make_connector

from mcping import (
    Connection,
    ConnectionState,
    ConnectFailed,
    ConnectionLost,
    InvalidState,
    MissingField,
    PassThroughResolver,
    Players,
    ResolutionFailed,
    ServerStatus,
    Timeout,
    TruncatedStream,
    UnexpectedPacketId,
    UnexpectedPong,
    Version,
    query_status,
)
from mcping.framing import Frame, write_frame

STATUS_JSON = '{"version":{"name":"Test","protocol":1},"players":{"online":0,"max":100}}'


class QueryTests(unittest.IsolatedAsyncioTestCase):
    async def test_end_to_end(self):
        server = FakeStatusServer(STATUS_JSON)
        conn = Connection(("127.0.0.1", 25565), connector=make_connector(server))

        await conn.connect()
        self.assertIs(conn.state, ConnectionState.CONNECTED)
        status = await conn.ping()

        self.assertEqual(
            status,
            ServerStatus(
                version=Version("Test", 1),
                players=Players(online=0, max=100, sample=[]),
                description=None,
                favicon=None,
            ),
        )
        self.assertIs(conn.state, ConnectionState.STATUS_RECEIVED)
        self.assertIs(conn.status, status)

        handshake = server.handshake
        self.assertEqual(handshake.server_address, "127.0.0.1")
        self.assertEqual(handshake.server_port, 25565)
        self.assertEqual(handshake.next_state, 1)
        self.assertEqual(handshake.protocol_version, 768)
        self.assertEqual(server.frames[1], Frame(0x00, b""))
        self.assertEqual(len(server.frames), 2)

    async def test_custom_protocol_version(self):
        server = FakeStatusServer(STATUS_JSON)
        conn = Connection(
            ("127.0.0.1", 25565), connector=make_connector(server), protocol_version=-1
        )
        await conn.connect()
        await conn.ping()
        self.assertEqual(server.handshake.protocol_version, 2**32 - 1)

    async def test_latency(self):
        server = FakeStatusServer(STATUS_JSON)
        conn = Connection(("127.0.0.1", 25565), connector=make_connector(server))
        await conn.connect()
        status = await conn.ping(with_latency=True)
        self.assertIsInstance(status.latency, int)
        self.assertGreaterEqual(status.latency, 0)
        self.assertEqual(server.frames[2].packet_id, 0x01)

    async def test_pong_mismatch(self):
        server = FakeStatusServer(STATUS_JSON, pong_offset=1)
        conn = Connection(("127.0.0.1", 25565), connector=make_connector(server))
        await conn.connect()
        with self.assertRaises(UnexpectedPong):
            await conn.ping(with_latency=True)
        self.assertIs(conn.state, ConnectionState.FAILED)

    async def test_query_status_helper(self):
        server = FakeStatusServer(STATUS_JSON)
        status = await query_status(
            "127.0.0.1", 25566, connector=make_connector(server), with_latency=False
        )
        self.assertEqual(status.players.max, 100)
        self.assertEqual(server.handshake.server_port, 25566)
        self.assertTrue(server.closed)

    async def test_deeply_nested_description(self):
        server = FakeStatusServer(
            '{"version":{"name":"Test","protocol":1},"players":{"online":0,"max":100},'
            '"description":' + "[" * 600 + '"a"' + "]" * 600 + "}"
        )
        conn = Connection(("127.0.0.1", 25565), connector=make_connector(server))
        await conn.connect()
        status = await conn.ping()
        self.assertEqual(status.description, "a")
        self.assertIs(conn.state, ConnectionState.STATUS_RECEIVED)

    async def test_context_manager_closes(self):
        server = FakeStatusServer(STATUS_JSON)
        async with Connection(("::1", 25565), connector=make_connector(server)) as conn:
            await conn.ping()
        self.assertIs(conn.state, ConnectionState.CLOSED)
        self.assertTrue(server.closed)


class StateOrderingTests(unittest.IsolatedAsyncioTestCase):
    async def test_ping_before_connect(self):
        conn = Connection(("127.0.0.1", 25565), connector=make_connector(BufferTransport()))
        with self.assertRaises(InvalidState) as ctx:
            await conn.ping()
        self.assertIs(ctx.exception.state, ConnectionState.IDLE)
        self.assertIs(conn.state, ConnectionState.IDLE)

    async def test_connect_twice(self):
        conn = Connection(("127.0.0.1", 25565), connector=make_connector(BufferTransport()))
        await conn.connect()
        with self.assertRaises(InvalidState):
            await conn.connect()
        self.assertIs(conn.state, ConnectionState.CONNECTED)

    async def test_ping_twice(self):
        conn = Connection(
            ("127.0.0.1", 25565), connector=make_connector(FakeStatusServer(STATUS_JSON))
        )
        await conn.connect()
        await conn.ping()
        with self.assertRaises(InvalidState):
            await conn.ping()

    async def test_close_is_idempotent(self):
        transport = BufferTransport()
        conn = Connection(("127.0.0.1", 25565), connector=make_connector(transport))
        await conn.connect()
        await conn.close()
        await conn.close()
        self.assertIs(conn.state, ConnectionState.CLOSED)
        self.assertTrue(transport.closed)
        with self.assertRaises(InvalidState):
            await conn.ping()

    def test_invalid_port(self):
        with self.assertRaises(ValueError):
            Connection(("127.0.0.1", 70000))

    def test_invalid_protocol_version(self):
        with self.assertRaises(ValueError):
            Connection(("127.0.0.1", 25565), protocol_version=2**40)


class FailureTests(unittest.IsolatedAsyncioTestCase):
    async def assertFailsWith(self, transport, error):
        conn = Connection(("127.0.0.1", 25565), connector=make_connector(transport))
        await conn.connect()
        with self.assertRaises(error) as ctx:
            await conn.ping()
        self.assertIs(conn.state, ConnectionState.FAILED)
        self.assertIs(conn.failure, ctx.exception)
        self.assertTrue(transport.closed)
        return ctx.exception

    async def test_unexpected_packet_id(self):
        error = await self.assertFailsWith(
            FakeStatusServer(STATUS_JSON, packet_id=0x01), UnexpectedPacketId
        )
        self.assertEqual(error.actual, 0x01)

    async def test_missing_field(self):
        error = await self.assertFailsWith(
            FakeStatusServer('{"version":{"name":"x","protocol":1},"players":{"online":0}}'),
            MissingField,
        )
        self.assertEqual(error.path, "players.max")

    async def test_truncated_response(self):
        await self.assertFailsWith(
            BufferTransport(write_frame(0x00, b"\x40{}")[:-1]), TruncatedStream
        )

    async def test_connection_reset(self):
        class ResetTransport(BufferTransport):
            async def write(self, data):
                raise ConnectionResetError("reset by peer")

        await self.assertFailsWith(ResetTransport(), ConnectionLost)

    async def test_unexpected_error_closes_transport(self):
        class BrokenTransport(BufferTransport):
            async def write(self, data):
                raise RuntimeError("broken")

        await self.assertFailsWith(BrokenTransport(), RuntimeError)

    async def test_unexpected_error_while_connecting(self):
        async def connector(host, port):
            raise RuntimeError("broken")

        conn = Connection(("127.0.0.1", 25565), connector=connector)
        with self.assertRaises(RuntimeError) as ctx:
            await conn.connect()
        self.assertIs(conn.state, ConnectionState.FAILED)
        self.assertIs(conn.failure, ctx.exception)


class TimeoutTests(unittest.IsolatedAsyncioTestCase):
    async def test_server_never_answers(self):
        transport = BufferTransport(hang=True)
        conn = Connection(
            ("127.0.0.1", 25565), timeout=0.05, connector=make_connector(transport)
        )
        await conn.connect()
        with self.assertRaises(Timeout):
            await conn.ping()
        self.assertIs(conn.state, ConnectionState.FAILED)
        self.assertTrue(transport.closed)

    async def test_connect_times_out(self):
        conn = Connection(
            ("127.0.0.1", 25565),
            timeout=0.05,
            connector=make_connector(BufferTransport(), delay=1),
        )
        with self.assertRaises(Timeout):
            await conn.connect()
        self.assertIs(conn.state, ConnectionState.FAILED)

    async def test_deadline_spans_connect_and_ping(self):
        transport = FakeStatusServer(STATUS_JSON)
        conn = Connection(
            ("127.0.0.1", 25565), timeout=0.05, connector=make_connector(transport)
        )
        await conn.connect()
        await asyncio.sleep(0.1)
        with self.assertRaises(Timeout):
            await conn.ping()
        self.assertTrue(transport.closed)

    async def test_resolving_times_out(self):
        class SlowResolver(StaticResolver):
            async def resolve(self, host, port):
                await asyncio.sleep(1)
                return await super().resolve(host, port)

        connector = make_connector(BufferTransport())
        conn = Connection(
            ("mc.example.com", 25565),
            timeout=0.05,
            resolver=SlowResolver([("10.0.0.1", 25565)]),
            connector=connector,
        )
        with self.assertRaises(Timeout):
            await conn.connect()
        self.assertIs(conn.state, ConnectionState.FAILED)
        self.assertEqual(connector.calls, [])


class ResolvingTests(unittest.IsolatedAsyncioTestCase):
    async def test_ip_literal_skips_resolver(self):
        resolver = StaticResolver([])
        conn = Connection(
            ("10.0.0.1", 25565),
            resolver=resolver,
            connector=make_connector(BufferTransport()),
        )
        await conn.connect()
        self.assertEqual(resolver.calls, [])

    async def test_endpoints_tried_in_order(self):
        server = FakeStatusServer(STATUS_JSON)
        resolver = StaticResolver([("10.0.0.1", 25570), ("10.0.0.2", 25570)])
        connector = make_connector(server, refused={("10.0.0.1", 25570)})
        conn = Connection(("bücher.example", 25565), resolver=resolver, connector=connector)

        await conn.connect()
        await conn.ping()

        self.assertEqual(resolver.calls, [("bücher.example", 25565)])
        self.assertEqual(connector.calls, [("10.0.0.1", 25570), ("10.0.0.2", 25570)])
        self.assertEqual(tuple(conn.endpoint), ("10.0.0.2", 25570))
        self.assertEqual(server.handshake.server_address, "xn--bcher-kva.example")
        self.assertEqual(server.handshake.server_port, 25570)

    async def test_all_endpoints_refused(self):
        resolver = StaticResolver([("10.0.0.1", 25565), ("10.0.0.2", 25565)])
        connector = make_connector(
            BufferTransport(), refused={("10.0.0.1", 25565), ("10.0.0.2", 25565)}
        )
        conn = Connection(("mc.example.com", 25565), resolver=resolver, connector=connector)
        with self.assertRaises(ResolutionFailed) as ctx:
            await conn.connect()
        self.assertIsInstance(ctx.exception.__cause__, ConnectionRefusedError)
        self.assertIs(conn.state, ConnectionState.FAILED)
        self.assertEqual(len(connector.calls), 2)

    async def test_ip_literal_refused(self):
        connector = make_connector(BufferTransport(), refused={("10.0.0.1", 25565)})
        conn = Connection(("10.0.0.1", 25565), connector=connector)
        with self.assertRaises(ConnectFailed) as ctx:
            await conn.connect()
        self.assertIsInstance(ctx.exception.__cause__, ConnectionRefusedError)
        self.assertIs(conn.state, ConnectionState.FAILED)

    async def test_empty_resolution(self):
        conn = Connection(
            ("mc.example.com", 25565),
            resolver=StaticResolver([]),
            connector=make_connector(BufferTransport()),
        )
        with self.assertRaises(ResolutionFailed):
            await conn.connect()
        self.assertIs(conn.state, ConnectionState.FAILED)

    async def test_pass_through_rejects_domains(self):
        conn = Connection(
            ("mc.example.com", 25565),
            resolver=PassThroughResolver(),
            connector=make_connector(BufferTransport()),
        )
        with self.assertRaises(ResolutionFailed):
            await conn.connect()


if __name__ == "__main__":
    unittest.main()
