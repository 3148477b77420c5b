"""Split responses: fragment decoding and reassembly"""

import bz2
import logging
import zlib

from a2s.byteio import ByteReader


# Is the response split among many packets or just one?
HEADER_SIMPLE = b'\xFF\xFF\xFF\xFF'
HEADER_MULTI = b'\xFE\xFF\xFF\xFF'

COMPRESSION_FLAG = 1 << 15


class A2SFragment(object):
    """One datagram's share of a split response"""

    def __init__(self, message_id, fragment_count, fragment_id, mtu, decompressed_size=0, crc=0, payload=b''):
        self.message_id = message_id
        self.fragment_count = fragment_count
        self.fragment_id = fragment_id
        self.mtu = mtu
        self.decompressed_size = decompressed_size
        self.crc = crc
        self.payload = payload

    @property
    def is_compressed(self):
        return bool(self.message_id & COMPRESSION_FLAG)

    def __repr__(self):
        return 'A2SFragment(message_id=%s, fragment=%s/%s, mtu=%s, compressed=%s, payload=%s bytes)' % (
            self.message_id, self.fragment_id + 1, self.fragment_count, self.mtu,
            self.is_compressed, len(self.payload))


def decompress(data):
    """Return the decompressed payload, or None if no decompressor accepts it."""
    # Source servers compress with bzip2, others use plain deflate streams
    for func, error in ((bz2.decompress, (OSError, ValueError)), (zlib.decompress, zlib.error)):
        try:
            return func(data)
        except error:
            continue
    return None


def decode_fragment(data):
    """Decode a datagram payload, with the multi-packet header already stripped."""
    reader = ByteReader(data)
    frag = A2SFragment(
        reader.read_uint32(),
        reader.read_uint8(),
        reader.read_uint8(),
        reader.read_uint16()
    )

    if frag.is_compressed:
        frag.decompressed_size = reader.read_uint32()
        frag.crc = reader.read_uint32()
        compressed = reader.peek()
        payload = decompress(compressed)
        if payload is None:
            # Best effort: hand over the raw bytes instead of failing the query
            logging.warning('Fragment %s: Failed to decompress %s bytes, using raw payload',
                            frag.message_id, len(compressed))
            payload = compressed
        elif zlib.crc32(payload) != frag.crc:
            logging.warning('Fragment %s: Checksum mismatch after decompression', frag.message_id)
        frag.payload = payload
    else:
        frag.payload = reader.peek()

    return frag


class FragmentAssembler(object):
    """Collects the fragments of one split response.

    Fragments may arrive in any order. Only one message is tracked at a time,
    fragments belonging to another message are dropped.
    """

    def __init__(self):
        self.message_id = None
        self.fragments = {}

    def __len__(self):
        return len(self.fragments)

    def reset(self):
        self.message_id = None
        self.fragments = {}

    def add(self, fragment):
        """Add a fragment and return the reassembled message once all parts are in, otherwise None."""
        if self.message_id is None:
            self.message_id = fragment.message_id
        elif fragment.message_id != self.message_id:
            logging.warning('Fragment %s: Discarded, currently assembling message %s',
                            fragment.message_id, self.message_id)
            return None

        # Duplicates replace the earlier copy instead of counting twice
        self.fragments[fragment.fragment_id] = fragment
        logging.debug('Fragment %s: Received part %s/%s',
                      fragment.message_id, fragment.fragment_id + 1, fragment.fragment_count)
        if len(self.fragments) < fragment.fragment_count:
            return None

        parts = sorted(self.fragments.values(), key=lambda frag: frag.fragment_id)
        data = b''.join(frag.payload for frag in parts)
        self.reset()

        # Some servers wrap a simple header inside the first payload
        if data[:4] == HEADER_SIMPLE:
            data = data[4:]
        return data
