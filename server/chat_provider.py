"""OpenAI-compatible chat-completion provider."""

import logging
import time

import requests

from core.interfaces import AIProvider
from core.config import (
    API_BASE_URL, CHAT_ENDPOINT, DEFAULT_MODEL,
    MAX_TOKENS, TEMPERATURE, REQUEST_TIMEOUT
)

logger = logging.getLogger(__name__)


class ChatCompletionProvider(AIProvider):
    """Posts role-tagged messages to a /chat/completions endpoint.

    Any non-2xx status, timeout or malformed body becomes a failure dict.
    """

    def __init__(self, api_key: str, base_url: str = API_BASE_URL, model: str = DEFAULT_MODEL,
                 timeout: int = REQUEST_TIMEOUT):
        super().__init__()
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.model_name = model
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
            'Authorization': f'Bearer {api_key}'
        })

    def chat_completion(self, messages: list[dict], model: str = None, max_tokens: int = None,
                        temperature: float = None) -> dict:
        payload = {
            'model': model or self.model_name,
            'messages': messages,
            'max_tokens': max_tokens or MAX_TOKENS,
            'temperature': TEMPERATURE if temperature is None else temperature
        }
        start_time = time.time()
        try:
            response = self.session.post(f"{self.base_url}{CHAT_ENDPOINT}", json=payload,
                                         timeout=self.timeout)
            ms = int((time.time() - start_time) * 1000)
            if not response.ok:
                try:
                    error = response.json().get('error', {}).get('message')
                except ValueError:
                    error = None
                message = error or f"API request failed: {response.status_code}"
                logger.error(f"Chat completion failed ({response.status_code}): {message}")
                self._record_stats(ms, failed=True)
                return {'success': False, 'error': message}

            data = response.json()
            content = data['choices'][0]['message']['content']
        except requests.Timeout:
            logger.error(f"Chat completion timed out after {self.timeout}s")
            self._record_stats(int((time.time() - start_time) * 1000), failed=True)
            return {'success': False, 'error': 'Request timed out'}
        except requests.RequestException as e:
            logger.error(f"Chat completion request error: {e}")
            self._record_stats(int((time.time() - start_time) * 1000), failed=True)
            return {'success': False, 'error': str(e)}
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Malformed chat completion response: {type(e).__name__}: {e}")
            self._record_stats(int((time.time() - start_time) * 1000), failed=True)
            return {'success': False, 'error': 'Malformed response from AI service'}

        usage = data.get('usage') or {}
        self._record_stats(ms, usage)
        return {
            'success': True,
            'content': content,
            'usage': usage,
            'model': data.get('model', payload['model']),
            'ms': ms
        }
