import contextlib
import logging
import time

from a2s.byteio import ByteReader
from a2s.connection import A2SConnection
from a2s.defaults import DEFAULT_ENCODING, DEFAULT_RETRIES, DEFAULT_TIMEOUT
from a2s.exceptions import BrokenMessageError, ClientClosedError
from a2s.protocols import A2S_CHALLENGE_RESPONSE, InfoProtocol, PlayersProtocol, RulesProtocol


class A2SClient(object):
    """Queries a game server for its info, players and rules.

    Each query closes the client when it finishes, successful or not. Use one
    client per query, or the module level info(), players() and rules().
    """

    def __init__(self, address, port, timeout=DEFAULT_TIMEOUT, encoding=DEFAULT_ENCODING, retries=DEFAULT_RETRIES):
        """Construct an A2SClient.

        Parameters:
            address (str) server hostname or IP address
            port (int) server query port
            timeout (float) seconds to wait for each response
            encoding (str) codec for text fields, or None for raw bytes
            retries (int) how many challenge responses are answered before giving up

        """
        self.address = address
        self.port = port
        self.encoding = encoding
        self.retries = retries
        self._connection = A2SConnection(address, port, timeout)

    @property
    def closed(self):
        return self._connection.closed

    def close(self):
        self._connection.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()

    async def info(self):
        """Return a SourceInfo or GoldSrcInfo, depending on the server's engine."""
        return await self._query(InfoProtocol())

    async def players(self):
        """Return a list of Player objects."""
        return await self._query(PlayersProtocol())

    async def rules(self):
        """Return the server's rules as a dict."""
        return await self._query(RulesProtocol())

    async def _query(self, protocol):
        if self.closed:
            raise ClientClosedError('A2SClient socket already closed')
        logging.debug('Addr %s:%s: Querying %s', self.address, self.port, protocol.name)
        try:
            return await self._request(protocol)
        finally:
            # The socket stays open for challenge retries and is released once here
            self.close()

    async def _request(self, protocol, challenge=0, retries=0):
        send_time = time.perf_counter()
        data = await self._connection.request(protocol.serialize_request(challenge))
        receive_time = time.perf_counter()

        # Only the first exchange reports a ping
        ping = receive_time - send_time if retries == 0 else 0.0

        reader = ByteReader(data, encoding=self.encoding)
        response_type = reader.read_uint8()

        if response_type == A2S_CHALLENGE_RESPONSE:
            if retries >= self.retries:
                raise BrokenMessageError('Server keeps sending challenge responses')
            challenge = reader.read_uint32()
            logging.info('Addr %s:%s: Received challenge %s, retrying %s query (%s/%s)',
                         self.address, self.port, challenge, protocol.name, retries + 1, self.retries)
            return await self._request(protocol, challenge, retries + 1)

        if not protocol.validate_response_type(response_type):
            raise BrokenMessageError('Invalid response type: 0x%02x' % response_type)

        return protocol.deserialize_response(reader, response_type, ping)


@contextlib.asynccontextmanager
async def managed_client(*args, **kwargs):
    """ Yields an A2SClient (closes its socket when leaving context). """
    client = A2SClient(*args, **kwargs)
    try:
        yield client
    finally:
        client.close()


async def info(address, port, timeout=DEFAULT_TIMEOUT, encoding=DEFAULT_ENCODING, retries=DEFAULT_RETRIES):
    async with managed_client(address, port, timeout, encoding, retries) as client:
        return await client.info()


async def players(address, port, timeout=DEFAULT_TIMEOUT, encoding=DEFAULT_ENCODING, retries=DEFAULT_RETRIES):
    async with managed_client(address, port, timeout, encoding, retries) as client:
        return await client.players()


async def rules(address, port, timeout=DEFAULT_TIMEOUT, encoding=DEFAULT_ENCODING, retries=DEFAULT_RETRIES):
    async with managed_client(address, port, timeout, encoding, retries) as client:
        return await client.rules()
