import os

from a2s.defaults import DEFAULT_ENCODING, DEFAULT_RETRIES, DEFAULT_TIMEOUT
from a2s.models import GoldSrcInfo


PLATFORMS = {
    "l": "Linux",
    "w": "Windows",
    "m": "Mac",
    "o": "Mac"
}

SERVER_TYPES = {
    "d": "Dedicated",
    "l": "Listen",
    "p": "SourceTV proxy"
}

# Values of the encoding option that select raw bytes
RAW_ENCODINGS = ("raw", "none", "bytes")


class Config:

    def __init__(self, path: str = "config.txt"):
        self.path = path
        self.update()

    def update(self):
        self.config = {}
        if not os.path.exists(self.path):
            return
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f.readlines():
                line = line.strip("\n").split("=", 1)
                if len(line) == 2:
                    self.config[line[0].strip()] = line[1].strip()

    def get(self, key: str, alternative_value=None, update_config=False):
        if update_config:
            self.update()
        try:
            return self.config[key]
        except KeyError:
            return alternative_value

    def get_float(self, key: str, alternative_value: float = None):
        try: return float(self.config[key])
        except (KeyError, ValueError): return alternative_value

    def get_int(self, key: str, alternative_value: int = None):
        try: return int(self.config[key])
        except (KeyError, ValueError): return alternative_value

    def get_encoding(self, key: str = "encoding", alternative_value=DEFAULT_ENCODING):
        return parse_encoding(self.config.get(key, alternative_value))

    def timeout(self):
        return self.get_float("timeout", DEFAULT_TIMEOUT)

    def retries(self):
        return self.get_int("retries", DEFAULT_RETRIES)


def parse_encoding(value):
    """Turn an encoding option into a codec name, or None for raw bytes."""
    if value is None or str(value).lower() in RAW_ENCODINGS:
        return None
    return value


def _text(value):
    if isinstance(value, bytes):
        return repr(value)
    return str(value)


def format_platform(platform):
    return PLATFORMS.get(_text(platform).lower(), _text(platform))


def format_server_type(server_type):
    return SERVER_TYPES.get(_text(server_type).lower(), _text(server_type))


def format_duration(seconds: float):
    seconds = int(seconds)
    return "%d:%02d:%02d" % (seconds // 3600, seconds // 60 % 60, seconds % 60)


def format_info(info):
    lines = [
        f"Name: {_text(info.server_name)}",
        f"Map: {_text(info.map_name)}",
        f"Game: {_text(info.game)} ({_text(info.folder)})",
        f"Players: {info.player_count}/{info.max_players} ({info.bot_count} bots)",
        f"Type: {format_server_type(info.server_type)} on {format_platform(info.platform)}",
        f"Password: {'yes' if info.password_protected else 'no'}",
        f"VAC: {'yes' if info.vac_enabled else 'no'}",
    ]
    if isinstance(info, GoldSrcInfo):
        lines.insert(0, f"Address: {_text(info.address)}")
        if info.is_mod and info.mod_website is not None:
            lines.append(f"Mod: {_text(info.mod_website)} (version {info.mod_version})")
    else:
        lines.append(f"Version: {_text(info.version)}")
        if info.keywords is not None:
            lines.append(f"Keywords: {_text(info.keywords)}")
    lines.append(f"Ping: {int(info.ping * 1000)}ms")
    return "\n".join(lines)


def format_players(players: list):
    if not players:
        return "No players online"
    players = sorted(players, key=lambda player: player.score, reverse=True)
    return "\n".join(
        f"{player.score:>5}  {format_duration(player.duration)}  {_text(player.name)}"
        for player in players
    )


def format_rules(rules: dict):
    if not rules:
        return "No rules"
    return "\n".join(f"{_text(key)} = {_text(rules[key])}" for key in sorted(rules))
