"""Abstract base classes for dependency injection."""

from abc import ABC, abstractmethod


class AIProvider(ABC):
    """Abstract base class for a chat-completion LLM provider.

    Implementations never raise for upstream problems; they return
    {'success': False, 'error': str} instead.
    """

    def __init__(self):
        self.stats = {
            'calls': 0,
            'failures': 0,
            'total_ms': 0,
            'prompt_tokens': 0,
            'completion_tokens': 0,
            'total_tokens': 0
        }

    @abstractmethod
    def chat_completion(self, messages: list[dict], model: str = None, max_tokens: int = None,
                        temperature: float = None) -> dict:
        """Run one chat completion over role-tagged messages.

        Returns {'success': True, 'content', 'usage', 'model', 'ms'} or
        {'success': False, 'error'}.
        """
        pass

    def _record_stats(self, ms: int, usage: dict = None, failed: bool = False) -> None:
        self.stats['calls'] += 1
        self.stats['total_ms'] += ms
        if failed:
            self.stats['failures'] += 1
        for key in ('prompt_tokens', 'completion_tokens', 'total_tokens'):
            self.stats[key] += (usage or {}).get(key, 0) or 0

    def get_stats(self) -> dict:
        calls = self.stats['calls']
        return {
            **self.stats,
            'avg_ms': round(self.stats['total_ms'] / calls, 1) if calls > 0 else 0,
            'avg_tokens': round(self.stats['total_tokens'] / calls, 1) if calls > 0 else 0
        }


class Storage(ABC):
    """Abstract base class for per-player key-value persistence.

    Values are JSON-serializable. When the backing store is unavailable,
    writes return False and reads return the default; nothing raises.
    """

    @abstractmethod
    def get(self, key: str, default=None, user_id: str = "default"):
        """Load a value. Returns default if missing or unreadable."""
        pass

    @abstractmethod
    def set(self, key: str, value, user_id: str = "default") -> bool:
        """Persist a value. Returns True on success."""
        pass

    @abstractmethod
    def remove(self, key: str, user_id: str = "default") -> bool:
        """Remove a key. Returns True on success."""
        pass

    @abstractmethod
    def exists(self, key: str, user_id: str = "default") -> bool:
        """Check if a key is stored."""
        pass

    @abstractmethod
    def clear(self, user_id: str = "default") -> bool:
        """Remove every key for a player. Returns True on success."""
        pass

    @abstractmethod
    def keys(self, user_id: str = "default") -> list[str]:
        """List stored keys for a player."""
        pass

    @abstractmethod
    def list_users(self) -> list[str]:
        """List all players with stored data."""
        pass
