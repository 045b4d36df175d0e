"""Mock implementations shared by the test modules."""

import json

from core.interfaces import AIProvider, Storage


def evaluation_json(total: float = 8.0, ai: float = 3.2, fmt: float = 1.6, eff: float = 1.6,
                    tech: float = 1.6) -> str:
    """An evaluator reply wrapped in prose, the way models tend to answer."""
    payload = {
        'scores': {
            'ai_evaluation': ai,
            'format_quality': fmt,
            'efficiency': eff,
            'technical_accuracy': tech
        },
        'total_score': total,
        'feedback': {
            'strengths': ['Clear role'],
            'improvements': ['Add an example'],
            'tips': ['Specify length']
        }
    }
    return f"Here is my evaluation:\n```json\n{json.dumps(payload)}\n```"


class MockAIProvider(AIProvider):
    """Mock AI provider for testing. Replies are queued and popped in order."""

    def __init__(self):
        super().__init__()
        self.model_name = 'mock-model'
        self.responses = []
        self.calls = []

    def queue_content(self, content: str):
        """Queue a successful completion."""
        self.responses.append({'success': True, 'content': content, 'usage': {}, 'model': 'mock-model', 'ms': 5})

    def queue_failure(self, error: str = 'API request failed: 500'):
        """Queue a failed completion."""
        self.responses.append({'success': False, 'error': error})

    def chat_completion(self, messages: list[dict], model: str = None, max_tokens: int = None,
                        temperature: float = None) -> dict:
        self.calls.append({
            'messages': messages,
            'model': model,
            'max_tokens': max_tokens,
            'temperature': temperature
        })
        if self.responses:
            return self.responses.pop(0)
        return {'success': True, 'content': 'Default output', 'usage': {}, 'model': 'mock-model', 'ms': 5}


class MockStorage(Storage):
    """In-memory storage for testing. Set available=False to simulate an unusable store."""

    def __init__(self, available: bool = True):
        self.available = available
        self.data = {}
        self.set_calls = []

    def get(self, key: str, default=None, user_id: str = "default"):
        return json.loads(json.dumps(self.data.get(user_id, {}).get(key, default)))

    def set(self, key: str, value, user_id: str = "default") -> bool:
        self.set_calls.append((user_id, key))
        if not self.available:
            return False
        self.data.setdefault(user_id, {})[key] = json.loads(json.dumps(value))
        return True

    def remove(self, key: str, user_id: str = "default") -> bool:
        if not self.available:
            return False
        self.data.get(user_id, {}).pop(key, None)
        return True

    def exists(self, key: str, user_id: str = "default") -> bool:
        return key in self.data.get(user_id, {})

    def clear(self, user_id: str = "default") -> bool:
        if not self.available:
            return False
        self.data.pop(user_id, None)
        return True

    def keys(self, user_id: str = "default") -> list[str]:
        return list(self.data.get(user_id, {}).keys())

    def list_users(self) -> list[str]:
        return sorted(self.data.keys())
