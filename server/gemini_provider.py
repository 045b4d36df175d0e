"""Gemini AI provider implementation."""

import logging
import time
import google.generativeai as genai

from core.interfaces import AIProvider
from core.config import GEMINI_MODEL, MAX_TOKENS, TEMPERATURE

logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    """Gemini AI provider implementation.

    System messages become the system instruction; assistant turns map to
    Gemini's 'model' role.
    """

    def __init__(self, api_key: str, model_name: str = GEMINI_MODEL):
        super().__init__()
        genai.configure(api_key=api_key)
        self.model_name = model_name

    @staticmethod
    def _split_messages(messages: list[dict]) -> tuple[str | None, list[dict]]:
        system_parts = []
        contents = []
        for message in messages:
            role = message.get('role')
            if role == 'system':
                system_parts.append(message['content'])
            else:
                contents.append({
                    'role': 'model' if role == 'assistant' else 'user',
                    'parts': [message['content']]
                })
        return ('\n\n'.join(system_parts) or None), contents

    def chat_completion(self, messages: list[dict], model: str = None, max_tokens: int = None,
                        temperature: float = None) -> dict:
        system_instruction, contents = self._split_messages(messages)
        model_name = model or self.model_name
        start_time = time.time()
        try:
            gen_model = genai.GenerativeModel(model_name, system_instruction=system_instruction)
            response = gen_model.generate_content(
                contents,
                generation_config=genai.GenerationConfig(
                    max_output_tokens=max_tokens or MAX_TOKENS,
                    temperature=TEMPERATURE if temperature is None else temperature
                )
            )
            text = response.text
        except Exception as e:
            # The SDK raises a wide range of transport and safety-block errors
            ms = int((time.time() - start_time) * 1000)
            logger.error(f"Gemini request failed: {type(e).__name__}: {e}")
            self._record_stats(ms, failed=True)
            return {'success': False, 'error': str(e) or type(e).__name__}

        ms = int((time.time() - start_time) * 1000)
        usage = {}
        metadata = getattr(response, 'usage_metadata', None)
        if metadata is not None:
            usage = {
                'prompt_tokens': getattr(metadata, 'prompt_token_count', 0) or 0,
                'completion_tokens': getattr(metadata, 'candidates_token_count', 0) or 0,
                'total_tokens': getattr(metadata, 'total_token_count', 0) or 0
            }
        self._record_stats(ms, usage)
        return {'success': True, 'content': text, 'usage': usage, 'model': model_name, 'ms': ms}
