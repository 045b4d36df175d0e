"""File-based storage implementation."""

import json
import logging
import os

from core.interfaces import Storage

logger = logging.getLogger(__name__)

FILE_PREFIX = 'prompt_battle_'
PROBE_FILE = '.prompt_battle_probe'


class FileStorage(Storage):
    """One JSON file per player holding {key: value}.

    Availability is probed once at construction; an unwritable directory
    turns every write into a no-op that returns False.
    """

    def __init__(self, state_dir: str = None):
        # Project root is one level up from server/
        project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        self.state_dir = state_dir or os.environ.get('PROMPT_BATTLE_STATE_DIR', project_root)
        self.available = self._probe()
        if not self.available:
            logger.warning(f"Storage directory {self.state_dir} is not writable; progress will not be saved")

    def _probe(self) -> bool:
        probe = os.path.join(self.state_dir, PROBE_FILE)
        try:
            os.makedirs(self.state_dir, exist_ok=True)
            with open(probe, 'w') as f:
                f.write('ok')
            os.remove(probe)
            return True
        except OSError:
            return False

    def _get_state_file(self, user_id: str) -> str:
        return os.path.join(self.state_dir, f'{FILE_PREFIX}{user_id}.json')

    def _load(self, user_id: str) -> dict:
        state_file = self._get_state_file(user_id)
        if not os.path.exists(state_file):
            return {}
        try:
            with open(state_file, 'r') as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading {state_file}: {e}")
            return {}

    def _dump(self, data: dict, user_id: str) -> bool:
        if not self.available:
            return False
        state_file = self._get_state_file(user_id)
        try:
            # Serialize before opening so a bad value cannot truncate the file
            content = json.dumps(data, indent=2)
            with open(state_file, 'w') as f:
                f.write(content)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error writing {state_file}: {e}")
            return False

    def get(self, key: str, default=None, user_id: str = "default"):
        return self._load(user_id).get(key, default)

    def set(self, key: str, value, user_id: str = "default") -> bool:
        data = self._load(user_id)
        data[key] = value
        return self._dump(data, user_id)

    def remove(self, key: str, user_id: str = "default") -> bool:
        data = self._load(user_id)
        if key not in data:
            return self.available
        del data[key]
        return self._dump(data, user_id)

    def exists(self, key: str, user_id: str = "default") -> bool:
        return key in self._load(user_id)

    def clear(self, user_id: str = "default") -> bool:
        if not self.available:
            return False
        state_file = self._get_state_file(user_id)
        try:
            if os.path.exists(state_file):
                os.remove(state_file)
            return True
        except OSError as e:
            logger.error(f"Error deleting {state_file}: {e}")
            return False

    def keys(self, user_id: str = "default") -> list[str]:
        return list(self._load(user_id).keys())

    def list_users(self) -> list[str]:
        """List all players with a state file."""
        users = []
        if os.path.exists(self.state_dir):
            for filename in os.listdir(self.state_dir):
                if filename.startswith(FILE_PREFIX) and filename.endswith('.json'):
                    users.append(filename[len(FILE_PREFIX):-5])
        return sorted(users)
