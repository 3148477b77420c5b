class Record(object):
    """Base for query results. Compares and prints by its fields."""

    def _fields(self):
        return vars(self)

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._fields() == other._fields()

    def __repr__(self):
        fields = ', '.join('%s=%r' % (key, value) for key, value in self._fields().items())
        return f'{type(self).__name__}({fields})'


class SourceInfo(Record):
    """Info response from a Source engine server (type 0x49)"""

    def __init__(self, protocol: int, server_name, map_name, folder, game, app_id: int,
                 player_count: int, max_players: int, bot_count: int, server_type, platform,
                 password_protected: bool, vac_enabled: bool, version, edf: int = 0, ping: float = 0.0,
                 port: int = None, steam_id: int = None, stv_port: int = None, stv_name=None,
                 keywords=None, game_id: int = None):
        self.protocol = protocol
        self.server_name = server_name
        self.map_name = map_name
        self.folder = folder
        self.game = game
        self.app_id = app_id
        self.player_count = player_count
        self.max_players = max_players
        self.bot_count = bot_count
        self.server_type = server_type
        self.platform = platform
        self.password_protected = password_protected
        self.vac_enabled = vac_enabled
        self.version = version
        self.edf = edf
        self.ping = ping

        # Extra data, only present if flagged in edf
        self.port = port
        self.steam_id = steam_id
        self.stv_port = stv_port
        self.stv_name = stv_name
        self.keywords = keywords
        self.game_id = game_id

    @property
    def has_port(self):
        return bool(self.edf & 0x80)

    @property
    def has_steam_id(self):
        return bool(self.edf & 0x10)

    @property
    def has_stv(self):
        return bool(self.edf & 0x40)

    @property
    def has_keywords(self):
        return bool(self.edf & 0x20)

    @property
    def has_game_id(self):
        return bool(self.edf & 0x01)


class GoldSrcInfo(Record):
    """Info response from a GoldSource engine server (type 0x6D)"""

    def __init__(self, address, server_name, map_name, folder, game, player_count: int,
                 max_players: int, protocol: int, server_type, platform, password_protected: bool,
                 is_mod: bool, vac_enabled: bool = False, bot_count: int = 0, ping: float = 0.0,
                 mod_website=None, mod_download=None, mod_version: int = None, mod_size: int = None,
                 multiplayer_only: bool = None, uses_custom_dll: bool = None):
        self.address = address
        self.server_name = server_name
        self.map_name = map_name
        self.folder = folder
        self.game = game
        self.player_count = player_count
        self.max_players = max_players
        self.protocol = protocol
        self.server_type = server_type
        self.platform = platform
        self.password_protected = password_protected
        self.is_mod = is_mod
        self.vac_enabled = vac_enabled
        self.bot_count = bot_count
        self.ping = ping

        # Mod section, some games leave it out
        self.mod_website = mod_website
        self.mod_download = mod_download
        self.mod_version = mod_version
        self.mod_size = mod_size
        self.multiplayer_only = multiplayer_only
        self.uses_custom_dll = uses_custom_dll


class Player(Record):
    def __init__(self, index: int, name, score: int, duration: float):
        self.index = index
        self.name = name
        self.score = score
        self.duration = duration

    def __str__(self):
        return self.name if isinstance(self.name, str) else repr(self.name)
