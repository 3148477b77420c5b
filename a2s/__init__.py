"""Client for the A2S query protocol spoken by Source and GoldSource game servers"""

from a2s.byteio import ByteReader, ByteWriter
from a2s.defaults import DEFAULT_ENCODING, DEFAULT_PORT, DEFAULT_RETRIES, DEFAULT_TIMEOUT
from a2s.exceptions import A2SError, BrokenMessageError, BufferExhaustedError, ClientClosedError, SendError
from a2s.models import GoldSrcInfo, Player, SourceInfo
from a2s.query import A2SClient, info, managed_client, players, rules

__version__ = "1.0.0"
