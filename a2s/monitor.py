import asyncio
from datetime import datetime
import logging

import pytz

from a2s.defaults import DEFAULT_ENCODING, DEFAULT_RETRIES, DEFAULT_TIMEOUT
from a2s import query
from a2s.exceptions import A2SError


class MonitoredPlayer():
    def __init__(self, name, score: int = 0, online_since: datetime = None):
        self.name = name
        self.score = score
        self.online_since = online_since if online_since else datetime.now(tz=pytz.utc)

    def __str__(self):
        return self.name if isinstance(self.name, str) else repr(self.name)

    def online_time(self, now: datetime = None):
        now = now if now else datetime.now(tz=pytz.utc)
        return int((now - self.online_since).total_seconds() / 60)


class ServerMonitor():
    """Polls a server and records players joining and leaving, and map changes.

    Events are kept in memory as (timestamp, category, message) tuples, with
    category being either "joins" or "match".
    """

    def __init__(self, address, port, timeout=DEFAULT_TIMEOUT, encoding=DEFAULT_ENCODING, timezone="UTC",
                 retries=DEFAULT_RETRIES):
        self.address = address
        self.port = port
        self.timeout = timeout
        self.encoding = encoding
        self.retries = retries
        self.tz = pytz.timezone(timezone) if timezone else pytz.utc

        self.info = None
        self.players = {}
        self.current_map = None
        self.last_map_change = None
        self.last_updated = None
        self.events = []

    def __repr__(self):
        return f'ServerMonitor({self.address}:{self.port}, players={len(self.players)}, map={self.current_map})'

    def _now(self):
        return datetime.now(tz=self.tz)

    def add_event(self, category: str, message: str):
        logging.info('Addr %s:%s: %s', self.address, self.port, message)
        self.events.append((self._now(), category, message))

    async def update(self, ignore_exceptions=False):
        try:
            logging.info('Addr %s:%s: Updating...', self.address, self.port)
            info = await query.info(self.address, self.port, self.timeout, self.encoding, self.retries)
            players = await query.players(self.address, self.port, self.timeout, self.encoding, self.retries)
        except (A2SError, asyncio.TimeoutError) as e:
            logging.error('Addr %s:%s: Failed to update: %s: %s', self.address, self.port, e.__class__.__name__, e)
            if not ignore_exceptions:
                raise
            return self

        self._parse_map(info)
        self._parse_players(players)
        self.info = info
        self.last_updated = self._now()
        return self

    def _parse_map(self, info):
        current_map = info.map_name
        if self.current_map is not None and current_map != self.current_map:
            message = f"Map changed from {self.current_map} to {current_map}."
            if self.last_map_change:
                message += f" The match lasted {str(int((self._now() - self.last_map_change).total_seconds() / 60))} minutes."
            else:
                message += " Match duration is unknown."
            self.add_event('match', message)
            self.last_map_change = self._now()
        self.current_map = current_map

    def _parse_players(self, players):
        # Unnamed players are still connecting
        online = {player.name: player for player in players if player.name}

        connected = [name for name in online if name not in self.players]
        disconnected = [self.players[name] for name in self.players if name not in online]

        for name in connected:
            self.players[name] = MonitoredPlayer(name, online[name].score)
            self.add_event('joins', f'{self.players[name]} connected')
        for player in disconnected:
            del self.players[player.name]
            self.add_event('joins', f'{player} disconnected after {str(player.online_time())} minutes')
        for name, player in online.items():
            self.players[name].score = player.score

    async def run(self, interval: float = 30.0, iterations: int = None):
        """Keep updating until cancelled, or for the given amount of iterations."""
        count = 0
        while iterations is None or count < iterations:
            await self.update(ignore_exceptions=True)
            count += 1
            if iterations is None or count < iterations:
                await asyncio.sleep(interval)
