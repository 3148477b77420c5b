"""Request builders and response parsers for each query kind"""

from a2s.byteio import ByteReader, ByteWriter
from a2s.exceptions import BrokenMessageError, BufferExhaustedError
from a2s.models import GoldSrcInfo, Player, SourceInfo


# Challenge
A2S_CHALLENGE_RESPONSE = 0x41

# Details Query
A2S_INFO = 0x54
A2S_INFO_STRING = b'Source Engine Query'
A2S_INFO_RESPONSE = 0x49
A2S_INFO_RESPONSE_LEGACY = 0x6D

# Players Query
A2S_PLAYER = 0x55
A2S_PLAYER_RESPONSE = 0x44

# Rules Query
A2S_RULES = 0x56
A2S_RULES_RESPONSE = 0x45

# Extra data flags of the Source info response, in the order they are read
EDF_PORT = 0x80
EDF_STEAM_ID = 0x10
EDF_STV = 0x40
EDF_KEYWORDS = 0x20
EDF_GAME_ID = 0x01


class ProtocolHandler(object):
    """Shared interface of the info, players and rules queries"""

    name = None

    def validate_response_type(self, response_type):
        raise NotImplementedError

    def serialize_request(self, challenge):
        raise NotImplementedError

    def deserialize_response(self, reader: ByteReader, response_type: int, ping: float):
        """Parse what follows the response type byte."""
        raise NotImplementedError


class InfoProtocol(ProtocolHandler):
    name = "info"

    def validate_response_type(self, response_type):
        return response_type in (A2S_INFO_RESPONSE, A2S_INFO_RESPONSE_LEGACY)

    def serialize_request(self, challenge):
        writer = ByteWriter()
        writer.write_uint8(A2S_INFO)
        writer.write_cstring(A2S_INFO_STRING)
        # The challenge is only appended once the server asked for one
        if challenge:
            writer.write_uint32(challenge)
        return writer.getvalue()

    def deserialize_response(self, reader, response_type, ping):
        if response_type == A2S_INFO_RESPONSE:
            return self.parse_source(reader, ping)
        elif response_type == A2S_INFO_RESPONSE_LEGACY:
            return self.parse_goldsrc(reader, ping)
        else:
            raise BrokenMessageError('Invalid info response type: 0x%02x' % response_type)

    def parse_source(self, reader, ping):
        info = SourceInfo(
            protocol=reader.read_uint8(),
            server_name=reader.read_cstring(),
            map_name=reader.read_cstring(),
            folder=reader.read_cstring(),
            game=reader.read_cstring(),
            app_id=reader.read_uint16(),
            player_count=reader.read_uint8(),
            max_players=reader.read_uint8(),
            bot_count=reader.read_uint8(),
            server_type=reader.read_char().lower(),
            platform=reader.read_char().lower(),
            password_protected=reader.read_bool(),
            vac_enabled=reader.read_bool(),
            version=reader.read_cstring(),
            ping=ping
        )

        # Deprecated mac value
        if info.platform in ('o', b'o'):
            info.platform = 'm' if isinstance(info.platform, str) else b'm'

        # Older servers stop right after the version string
        try:
            info.edf = reader.read_uint8()
        except BufferExhaustedError:
            info.edf = 0

        if info.edf & EDF_PORT:
            info.port = reader.read_uint16()
        if info.edf & EDF_STEAM_ID:
            info.steam_id = reader.read_uint64()
        if info.edf & EDF_STV:
            info.stv_port = reader.read_uint16()
            info.stv_name = reader.read_cstring()
        if info.edf & EDF_KEYWORDS:
            info.keywords = reader.read_cstring()
        if info.edf & EDF_GAME_ID:
            info.game_id = reader.read_uint64()

        return info

    def parse_goldsrc(self, reader, ping):
        # NOTE: player count, max players and protocol really are in this order on the wire
        info = GoldSrcInfo(
            address=reader.read_cstring(),
            server_name=reader.read_cstring(),
            map_name=reader.read_cstring(),
            folder=reader.read_cstring(),
            game=reader.read_cstring(),
            player_count=reader.read_uint8(),
            max_players=reader.read_uint8(),
            protocol=reader.read_uint8(),
            server_type=reader.read_char(),
            platform=reader.read_char(),
            password_protected=reader.read_bool(),
            is_mod=reader.read_bool(),
            ping=ping
        )

        # Some games don't send the mod section
        if info.is_mod and len(reader) > 2:
            info.mod_website = reader.read_cstring()
            info.mod_download = reader.read_cstring()
            reader.read(1)  # NULL
            info.mod_version = reader.read_uint32()
            info.mod_size = reader.read_uint32()
            info.multiplayer_only = reader.read_bool()
            info.uses_custom_dll = reader.read_bool()

        info.vac_enabled = reader.read_bool()
        info.bot_count = reader.read_uint8()

        return info


class PlayersProtocol(ProtocolHandler):
    name = "players"

    def validate_response_type(self, response_type):
        return response_type == A2S_PLAYER_RESPONSE

    def serialize_request(self, challenge):
        writer = ByteWriter()
        writer.write_uint8(A2S_PLAYER)
        writer.write_uint32(challenge)
        return writer.getvalue()

    def deserialize_response(self, reader, response_type, ping):
        player_count = reader.read_uint8()
        return [
            Player(
                index=reader.read_uint8(),
                name=reader.read_cstring(),
                score=reader.read_int32(),
                duration=reader.read_float()
            )
            for _ in range(player_count)
        ]


class RulesProtocol(ProtocolHandler):
    name = "rules"

    def validate_response_type(self, response_type):
        return response_type == A2S_RULES_RESPONSE

    def serialize_request(self, challenge):
        writer = ByteWriter()
        writer.write_uint8(A2S_RULES)
        writer.write_uint32(challenge)
        return writer.getvalue()

    def deserialize_response(self, reader, response_type, ping):
        rule_count = reader.read_uint16()
        rules = {}
        for _ in range(rule_count):
            key = reader.read_cstring()
            # Later duplicates overwrite earlier ones
            rules[key] = reader.read_cstring()
        return rules
