import asyncio
import struct

import pytest

import a2s
from a2s import query
from a2s.byteio import ByteWriter
from a2s.connection import A2SConnection
from a2s.exceptions import BrokenMessageError, ClientClosedError
from a2s.fragment import HEADER_SIMPLE
from a2s.models import Player, SourceInfo


def challenge(value):
    return b'A' + struct.pack('<I', value)


def source_info_response():
    writer = ByteWriter()
    writer.write_uint8(0x49)
    writer.write_uint8(17)
    for text in ("Test", "de_dust2", "cstrike", "CSGO"):
        writer.write_cstring(text)
    writer.write_uint16(730)
    writer.write_uint8(10)
    writer.write_uint8(32)
    writer.write_uint8(0)
    writer.write_char("d")
    writer.write_char("l")
    writer.write_bool(False)
    writer.write_bool(True)
    writer.write_cstring("1.0")
    writer.write_uint8(0)
    return writer.getvalue()


def players_response():
    writer = ByteWriter()
    writer.write_uint8(0x44)
    writer.write_uint8(1)
    writer.write_uint8(0)
    writer.write_cstring("Alice")
    writer.write_int32(7)
    writer.write_float(30.0)
    return writer.getvalue()


class FakeConnection:
    """Stands in for A2SConnection, answering from a list of responses"""

    instances = []

    def __init__(self, address, port, timeout):
        self.address = address
        self.port = port
        self.timeout = timeout
        self.closed = False
        self.close_calls = 0
        self.requests = []
        self.responses = []
        FakeConnection.instances.append(self)

    async def request(self, payload):
        self.requests.append(payload)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        self.close_calls += 1
        self.closed = True


@pytest.fixture
def fake_connection(monkeypatch):
    FakeConnection.instances = []
    monkeypatch.setattr(query, "A2SConnection", FakeConnection)

    def make(*responses, **kwargs):
        client = query.A2SClient("127.0.0.1", 27015, **kwargs)
        conn = FakeConnection.instances[-1]
        conn.responses = list(responses)
        return client, conn
    return make


def test_info(fake_connection):
    client, conn = fake_connection(source_info_response())
    info = asyncio.run(client.info())
    assert isinstance(info, SourceInfo)
    assert info.server_name == "Test"
    assert info.ping >= 0
    assert conn.requests == [b'TSource Engine Query\x00']
    assert conn.close_calls == 1
    assert client.closed


def test_challenge_is_echoed(fake_connection):
    client, conn = fake_connection(challenge(0xDEADBEEF), players_response())
    players = asyncio.run(client.players())
    assert players == [Player(0, "Alice", 7, 30.0)]
    assert conn.requests == [b'U\x00\x00\x00\x00', b'U\xef\xbe\xad\xde']
    assert conn.close_calls == 1


def test_ping_is_zero_after_challenge(fake_connection):
    client, conn = fake_connection(challenge(42), source_info_response())
    info = asyncio.run(client.info())
    assert info.ping == 0.0
    assert conn.requests[1] == b'TSource Engine Query\x00' + struct.pack('<I', 42)


@pytest.mark.parametrize("retries", [0, 2, 5])
def test_challenge_retry_limit(fake_connection, retries):
    client, conn = fake_connection(challenge(1), retries=retries)
    with pytest.raises(BrokenMessageError, match="keeps sending challenge"):
        asyncio.run(client.rules())
    assert len(conn.requests) == retries + 1
    assert conn.close_calls == 1


def test_default_retry_limit(fake_connection):
    client, conn = fake_connection(challenge(1))
    with pytest.raises(BrokenMessageError):
        asyncio.run(client.players())
    assert len(conn.requests) == a2s.DEFAULT_RETRIES + 1


def test_unexpected_response_type(fake_connection):
    client, conn = fake_connection(b'E\x00\x00')
    with pytest.raises(BrokenMessageError, match="0x45"):
        asyncio.run(client.players())
    assert conn.close_calls == 1


def test_timeout_closes_at_call_boundary(fake_connection):
    client, conn = fake_connection(challenge(1), asyncio.TimeoutError())
    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(client.rules())
    assert len(conn.requests) == 2
    assert conn.close_calls == 1


def test_empty_response(fake_connection):
    client, conn = fake_connection(b'')
    with pytest.raises(BrokenMessageError):
        asyncio.run(client.info())


def test_closed_client(fake_connection):
    client, conn = fake_connection(source_info_response())
    asyncio.run(client.info())
    with pytest.raises(ClientClosedError):
        asyncio.run(client.info())
    assert len(conn.requests) == 1


def test_context_manager(fake_connection):
    client, conn = fake_connection(source_info_response())

    async def scenario():
        async with client as c:
            assert c is client
    asyncio.run(scenario())
    assert client.closed


def test_convenience_functions(fake_connection, monkeypatch):
    original = FakeConnection.__init__

    def init(self, *args):
        original(self, *args)
        self.responses = [challenge(5), players_response()]
    monkeypatch.setattr(FakeConnection, "__init__", init)

    assert asyncio.run(a2s.players("127.0.0.1", 27015)) == [Player(0, "Alice", 7, 30.0)]
    assert FakeConnection.instances[-1].closed


def test_convenience_functions_honour_retries(fake_connection, monkeypatch):
    original = FakeConnection.__init__

    def init(self, *args):
        original(self, *args)
        self.responses = [challenge(5)]
    monkeypatch.setattr(FakeConnection, "__init__", init)

    with pytest.raises(BrokenMessageError, match="keeps sending challenge"):
        asyncio.run(a2s.rules("127.0.0.1", 27015, retries=1))
    assert len(FakeConnection.instances[-1].requests) == 2


class FakeServer(asyncio.DatagramProtocol):

    def __init__(self):
        self.requests = []

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data, addr):
        self.requests.append(data)
        if len(self.requests) == 1:
            self.transport.sendto(HEADER_SIMPLE + challenge(99), addr)
        else:
            self.transport.sendto(HEADER_SIMPLE + source_info_response(), addr)


def test_info_over_udp():
    async def main():
        loop = asyncio.get_running_loop()
        transport, server = await loop.create_datagram_endpoint(FakeServer, local_addr=('127.0.0.1', 0))
        port = transport.get_extra_info('sockname')[1]
        try:
            client = query.A2SClient('127.0.0.1', port, timeout=1.0)
            assert isinstance(client._connection, A2SConnection)
            return await client.info(), server.requests
        finally:
            transport.close()

    info, requests = asyncio.run(main())
    assert requests == [
        HEADER_SIMPLE + b'TSource Engine Query\x00',
        HEADER_SIMPLE + b'TSource Engine Query\x00' + struct.pack('<I', 99),
    ]
    assert info.map_name == "de_dust2"
    assert info.ping == 0.0


def test_ping_over_udp():
    class Server(FakeServer):
        def datagram_received(self, data, addr):
            self.transport.sendto(HEADER_SIMPLE + source_info_response(), addr)

    async def main():
        loop = asyncio.get_running_loop()
        transport, _ = await loop.create_datagram_endpoint(Server, local_addr=('127.0.0.1', 0))
        try:
            return await query.info('127.0.0.1', transport.get_extra_info('sockname')[1], 1.0)
        finally:
            transport.close()

    info = asyncio.run(main())
    assert info.protocol == 17
    assert info.app_id == 730
    assert info.vac_enabled is True
    assert info.ping > 0
