"""Unit tests for AI provider implementations."""

import unittest
from unittest.mock import MagicMock, patch

import requests

from server.chat_provider import ChatCompletionProvider
from server.gemini_provider import GeminiProvider

MESSAGES = [
    {'role': 'system', 'content': 'You are an evaluator.'},
    {'role': 'user', 'content': 'Evaluate this.'},
    {'role': 'assistant', 'content': 'Sure.'},
    {'role': 'user', 'content': 'Go on.'}
]


def make_response(status_code: int = 200, body: dict = None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = body if body is not None else {}
    return response


class TestChatCompletionProvider(unittest.TestCase):

    def setUp(self):
        self.provider = ChatCompletionProvider('sk-test', base_url='https://api.example.com/v1/', model='gpt-test')

    def test_success(self):
        body = {
            'model': 'gpt-test-0613',
            'choices': [{'message': {'role': 'assistant', 'content': 'Hello'}}],
            'usage': {'prompt_tokens': 10, 'completion_tokens': 5, 'total_tokens': 15}
        }
        with patch.object(self.provider.session, 'post', return_value=make_response(body=body)) as post:
            result = self.provider.chat_completion(MESSAGES, temperature=0.3)

        self.assertTrue(result['success'])
        self.assertEqual(result['content'], 'Hello')
        self.assertEqual(result['model'], 'gpt-test-0613')
        self.assertEqual(result['usage']['total_tokens'], 15)
        url = post.call_args.args[0]
        payload = post.call_args.kwargs['json']
        self.assertEqual(url, 'https://api.example.com/v1/chat/completions')
        self.assertEqual(payload['model'], 'gpt-test')
        self.assertEqual(payload['temperature'], 0.3)
        self.assertEqual(payload['max_tokens'], 2000)
        self.assertEqual(payload['messages'], MESSAGES)

        stats = self.provider.get_stats()
        self.assertEqual(stats['calls'], 1)
        self.assertEqual(stats['total_tokens'], 15)

    def test_defaults(self):
        body = {'choices': [{'message': {'content': 'x'}}]}
        with patch.object(self.provider.session, 'post', return_value=make_response(body=body)) as post:
            self.provider.chat_completion(MESSAGES)
        self.assertEqual(post.call_args.kwargs['json']['temperature'], 0.7)

    def test_bearer_token(self):
        self.assertEqual(self.provider.session.headers['Authorization'], 'Bearer sk-test')

    def test_http_error(self):
        response = make_response(401, {'error': {'message': 'Invalid API key'}})
        with patch.object(self.provider.session, 'post', return_value=response):
            result = self.provider.chat_completion(MESSAGES)
        self.assertEqual(result, {'success': False, 'error': 'Invalid API key'})
        self.assertEqual(self.provider.get_stats()['failures'], 1)

    def test_http_error_without_body(self):
        response = make_response(503)
        response.json.side_effect = ValueError('no json')
        with patch.object(self.provider.session, 'post', return_value=response):
            result = self.provider.chat_completion(MESSAGES)
        self.assertEqual(result['error'], 'API request failed: 503')

    def test_timeout(self):
        with patch.object(self.provider.session, 'post', side_effect=requests.Timeout()):
            result = self.provider.chat_completion(MESSAGES)
        self.assertFalse(result['success'])
        self.assertEqual(result['error'], 'Request timed out')

    def test_connection_error(self):
        with patch.object(self.provider.session, 'post', side_effect=requests.ConnectionError('refused')):
            result = self.provider.chat_completion(MESSAGES)
        self.assertFalse(result['success'])

    def test_malformed_body(self):
        with patch.object(self.provider.session, 'post', return_value=make_response(body={'choices': []})):
            result = self.provider.chat_completion(MESSAGES)
        self.assertFalse(result['success'])


class TestGeminiProvider(unittest.TestCase):

    def setUp(self):
        patcher = patch('server.gemini_provider.genai')
        self.genai = patcher.start()
        self.addCleanup(patcher.stop)
        self.provider = GeminiProvider('key', model_name='gemini-test')
        self.model = self.genai.GenerativeModel.return_value

    def test_split_messages(self):
        system, contents = GeminiProvider._split_messages(MESSAGES)
        self.assertEqual(system, 'You are an evaluator.')
        self.assertEqual([c['role'] for c in contents], ['user', 'model', 'user'])
        self.assertEqual(contents[0]['parts'], ['Evaluate this.'])

    def test_success(self):
        response = MagicMock()
        response.text = '{"total_score": 8}'
        response.usage_metadata.prompt_token_count = 12
        response.usage_metadata.candidates_token_count = 8
        response.usage_metadata.total_token_count = 20
        self.model.generate_content.return_value = response

        result = self.provider.chat_completion(MESSAGES, max_tokens=500, temperature=0.3)

        self.assertTrue(result['success'])
        self.assertEqual(result['content'], '{"total_score": 8}')
        self.assertEqual(result['usage']['total_tokens'], 20)
        self.assertEqual(result['model'], 'gemini-test')
        self.genai.configure.assert_called_once_with(api_key='key')
        self.assertEqual(self.genai.GenerativeModel.call_args.kwargs['system_instruction'],
                         'You are an evaluator.')
        self.genai.GenerationConfig.assert_called_once_with(max_output_tokens=500, temperature=0.3)
        self.assertEqual(self.provider.get_stats()['total_tokens'], 20)

    def test_failure(self):
        self.model.generate_content.side_effect = RuntimeError('quota exceeded')
        result = self.provider.chat_completion(MESSAGES)
        self.assertEqual(result, {'success': False, 'error': 'quota exceeded'})
        self.assertEqual(self.provider.get_stats()['failures'], 1)


if __name__ == '__main__':
    unittest.main()
