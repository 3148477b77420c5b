"""UDP transport for server queries"""

import asyncio
import logging

from a2s.defaults import DEFAULT_TIMEOUT
from a2s.exceptions import BrokenMessageError, ClientClosedError, SendError
from a2s.fragment import HEADER_MULTI, HEADER_SIMPLE, FragmentAssembler, decode_fragment


class PendingRequest(object):
    """The future and fragment buffer belonging to a single request"""

    def __init__(self, future):
        self.future = future
        self.assembler = FragmentAssembler()

    def resolve(self, data):
        if not self.future.done():
            self.future.set_result(data)

    def fail(self, exc):
        if not self.future.done():
            self.future.set_exception(exc)


class A2SProtocol(asyncio.DatagramProtocol):
    """Forwards socket events to the owning A2SConnection"""

    def __init__(self, connection):
        self.connection = connection

    def datagram_received(self, data, addr):
        self.connection.datagram_received(data)

    def error_received(self, exc):
        self.connection.error_received(exc)


class A2SConnection(object):
    """UDP socket to a single game server, handling one request at a time"""

    def __init__(self, address, port, timeout=DEFAULT_TIMEOUT):
        """Construct an A2SConnection.

        Parameters:
            address (str) server hostname or IP address
            port (int) server query port
            timeout (float) seconds to wait for a complete response

        The socket itself is opened on the first send.
        """
        self.address = address
        self.port = port
        self.timeout = timeout
        self.closed = False
        self._transport = None
        self._pending = None
        self._send_error = None

    def __repr__(self):
        return f'A2SConnection({self.address}:{self.port}, closed={self.closed})'

    async def _connect(self):
        if self._transport is None:
            loop = asyncio.get_running_loop()
            try:
                self._transport, _ = await loop.create_datagram_endpoint(
                    lambda: A2SProtocol(self), remote_addr=(self.address, self.port))
            except OSError as e:
                logging.error('Addr %s:%s: Could not open socket: %s', self.address, self.port, e)
                self.close()
                raise SendError('Could not open socket: %s' % e) from e

    async def send(self, payload):
        """Send one request packet. Does nothing once the connection is closed.

            Raises:
                SendError if the packet could not be transmitted
        """
        if self.closed:
            return
        await self._connect()
        if self.closed:
            return
        packet = HEADER_SIMPLE + payload
        logging.debug('Addr %s:%s: Sending %s', self.address, self.port, packet.hex())
        self._send_error = None
        try:
            self._transport.sendto(packet)
        except OSError as e:
            self.error_received(e)
        # The event loop reports failed writes through error_received instead of raising
        if self._send_error is not None:
            raise self._send_error

    async def request(self, payload):
        """Send a request and return the (reassembled) response body.

            Raises:
                asyncio.TimeoutError if no complete response arrived in time
                BrokenMessageError if a malformed packet was received
                SendError if the request could not be transmitted
        """
        loop = asyncio.get_running_loop()
        pending = PendingRequest(loop.create_future())
        self._pending = pending

        async def exchange():
            await self.send(payload)
            return await pending.future

        try:
            return await asyncio.wait_for(exchange(), self.timeout)
        finally:
            # Anything arriving from here on is ignored
            if self._pending is pending:
                self._pending = None
            if pending.future.done() and not pending.future.cancelled():
                pending.future.exception()

    def datagram_received(self, packet):
        logging.debug('Addr %s:%s: Received %s', self.address, self.port, packet.hex())
        pending = self._pending
        if pending is None or pending.future.done():
            logging.warning('Addr %s:%s: Dropped packet received without pending request', self.address, self.port)
            return
        try:
            response = self._handle_packet(packet, pending.assembler)
        except BrokenMessageError as e:
            pending.fail(e)
        else:
            if response is not None:
                pending.resolve(response)

    def _handle_packet(self, packet, assembler):
        if len(packet) < 4:
            raise BrokenMessageError('Packet too short')
        header = packet[:4]
        data = packet[4:]

        if header == HEADER_SIMPLE:
            return data
        elif header == HEADER_MULTI:
            return assembler.add(decode_fragment(data))
        else:
            raise BrokenMessageError('Invalid packet header: %s' % header.hex())

    def error_received(self, exc):
        # Usually an ICMP port unreachable reported back on the socket
        logging.error('Addr %s:%s: Socket error: %s', self.address, self.port, exc)
        error = SendError('Failed to send request: %s' % exc)
        error.__cause__ = exc
        self._send_error = error
        if self._pending is not None:
            self._pending.fail(error)
        self.close()

    def close(self):
        """Release the socket. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        if self._transport is not None:
            self._transport.close()
            self._transport = None
        pending = self._pending
        if pending is not None:
            pending.fail(ClientClosedError('Connection closed while awaiting a response'))
