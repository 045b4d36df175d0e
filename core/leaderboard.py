"""Local leaderboard snapshot.

Players share standings by exporting and hand-merging a JSON file; this is a
file-exchange convention, not a synchronized store.
"""

import logging

logger = logging.getLogger(__name__)


def _xp_key(player: dict) -> float:
    """Sort key for hand-edited entries: numeric strings count, anything else is 0."""
    try:
        return float(player.get('xp') or 0)
    except (TypeError, ValueError):
        return 0.0


class Leaderboard:
    """Player entries sorted by XP, highest first."""

    def __init__(self, players: list[dict] = None):
        self.players = list(players or [])

    def upsert(self, entry: dict) -> None:
        """Replace the entry with the same username, or append it."""
        for i, player in enumerate(self.players):
            if player.get('username') == entry['username']:
                self.players[i] = entry
                break
        else:
            self.players.append(entry)
        self.players.sort(key=_xp_key, reverse=True)

    def rank_of(self, username: str) -> int | None:
        """1-based rank, or None if the player is not listed."""
        for i, player in enumerate(self.players):
            if player.get('username') == username:
                return i + 1
        return None

    def to_dict(self) -> dict:
        return {'players': list(self.players)}

    @classmethod
    def from_dict(cls, data: dict | None) -> 'Leaderboard':
        if data is None:
            return cls()
        players = data.get('players') if isinstance(data, dict) else None
        if not isinstance(players, list):
            logger.warning(f"Ignoring malformed leaderboard snapshot: {type(data).__name__}")
            return cls()
        return cls([p for p in players if isinstance(p, dict) and p.get('username')])
