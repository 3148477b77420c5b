"""Sequential readers and writers for the binary layout of query messages"""

import struct

from a2s.exceptions import BufferExhaustedError


LITTLE_ENDIAN = '<'
BIG_ENDIAN = '>'


class ByteReader(object):
    """Reads primitive values from a byte string, advancing a position."""

    def __init__(self, data, endian=LITTLE_ENDIAN, encoding=None):
        """Construct a ByteReader.

        Parameters:
            data (bytes) the message to read from
            endian (str) '<' for little-endian, '>' for big-endian
            encoding (str) codec used for strings and chars, or None to
                return them as raw bytes

        """
        self.data = bytes(data)
        self.position = 0
        self.endian = endian
        self.encoding = encoding

    def __len__(self):
        """Return the amount of unread bytes."""
        return len(self.data) - self.position

    def read(self, size=-1):
        """Return the next `size` bytes, or everything left if size is negative."""
        if size < 0:
            size = len(self)
        if self.position + size > len(self.data):
            raise BufferExhaustedError('Cannot read %s bytes from position %s' % (size, self.position))
        data = self.data[self.position:self.position + size]
        self.position += size
        return data

    def peek(self, size=-1):
        """Return the next `size` bytes without advancing."""
        if size < 0:
            return self.data[self.position:]
        return self.data[self.position:self.position + size]

    def _unpack(self, fmt):
        size = struct.calcsize(fmt)
        return struct.unpack(self.endian + fmt, self.read(size))[0]

    def read_int8(self):
        return self._unpack('b')

    def read_uint8(self):
        return self._unpack('B')

    def read_int16(self):
        return self._unpack('h')

    def read_uint16(self):
        return self._unpack('H')

    def read_int32(self):
        return self._unpack('i')

    def read_uint32(self):
        return self._unpack('I')

    def read_int64(self):
        return self._unpack('q')

    def read_uint64(self):
        return self._unpack('Q')

    def read_float(self):
        return self._unpack('f')

    def read_double(self):
        return self._unpack('d')

    def read_bool(self):
        return self.read_uint8() != 0

    def read_char(self):
        return self._decode(self.read(1))

    def read_cstring(self):
        """Read up to the next NUL byte. The NUL is consumed but not returned."""
        end = self.data.find(b'\x00', self.position)
        if end == -1:
            raise BufferExhaustedError('Unterminated string at position %s' % self.position)
        data = self.read(end - self.position)
        self.position += 1
        return self._decode(data)

    def _decode(self, data):
        if self.encoding is None:
            return data
        return data.decode(self.encoding, errors='replace')


class ByteWriter(object):
    """Appends primitive values to a growing byte string. Writing never fails on space."""

    def __init__(self, endian=LITTLE_ENDIAN, encoding="utf-8"):
        self.endian = endian
        self.encoding = encoding
        self._buffer = bytearray()

    def __len__(self):
        return len(self._buffer)

    def getvalue(self):
        """Return the bytes written so far."""
        return bytes(self._buffer)

    def write(self, data):
        self._buffer += data

    def _pack(self, fmt, value):
        self._buffer += struct.pack(self.endian + fmt, value)

    def write_int8(self, value):
        self._pack('b', value)

    def write_uint8(self, value):
        self._pack('B', value)

    def write_int16(self, value):
        self._pack('h', value)

    def write_uint16(self, value):
        self._pack('H', value)

    def write_int32(self, value):
        self._pack('i', value)

    def write_uint32(self, value):
        self._pack('I', value)

    def write_int64(self, value):
        self._pack('q', value)

    def write_uint64(self, value):
        self._pack('Q', value)

    def write_float(self, value):
        self._pack('f', value)

    def write_double(self, value):
        self._pack('d', value)

    def write_bool(self, value):
        self.write_uint8(1 if value else 0)

    def write_char(self, value):
        data = self._encode(value)
        if len(data) != 1:
            raise ValueError("A char must encode to exactly one byte, got %r" % data)
        self.write(data)

    def write_cstring(self, value):
        self.write(self._encode(value))
        self.write_uint8(0)

    def _encode(self, value):
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        return value.encode(self.encoding or "utf-8")
