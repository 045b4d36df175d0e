"""API tests for the FastAPI server."""

import asyncio
import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from fastapi.testclient import TestClient

from mocks import MockAIProvider, MockStorage, evaluation_json

import server.app as app_module
from core.coach import PromptCoach
from core.game import SessionContext
from core.session import Phase
from server.file_storage import FileStorage

GOOD_PROMPT = 'You are a data analyst. Explain this query as a bullet list.'


class TestAPI(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

        env = patch.dict(os.environ, {
            'PROMPT_BATTLE_STORAGE': 'file',
            'PROMPT_BATTLE_STATE_DIR': self.tmp.name,
            'PROMPT_BATTLE_CONFIG': os.path.join(self.tmp.name, 'missing.json')
        })
        env.start()
        self.addCleanup(env.stop)
        os.environ.pop('OPENAI_API_KEY', None)
        os.environ.pop('GEMINI_API_KEY', None)

        tick = patch.object(app_module, 'TICK_SECONDS', 3600)
        tick.start()
        self.addCleanup(tick.stop)

        self.client = TestClient(app_module.app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

        self.provider = MockAIProvider()
        app_module.ai_provider = self.provider
        app_module.coach = PromptCoach(self.provider)
        app_module.sessions.clear()

    def create_profile(self, user_id: str = 'alice'):
        response = self.client.post('/api/profile', json={
            'username': user_id, 'avatar_id': 'robot', 'team_name': 'Red', 'user_id': user_id
        })
        self.assertEqual(response.status_code, 200)
        return response.json()

    def start_crafting(self, user_id: str = 'alice', scenario_id: str = 'sql-explainer'):
        response = self.client.post('/api/battle/start', json={'scenario_id': scenario_id, 'user_id': user_id})
        self.assertEqual(response.status_code, 200)
        response = self.client.post('/api/battle/ready', json={'user_id': user_id})
        self.assertEqual(response.status_code, 200)
        return response.json()

    def test_startup_uses_file_storage_and_offline_scorer(self):
        self.assertIsInstance(app_module.storage, FileStorage)
        self.assertEqual(app_module.storage.state_dir, self.tmp.name)
        response = self.client.get('/')
        self.assertEqual(response.json()['name'], 'Prompt Battle API')

    def test_profile_lifecycle(self):
        self.assertEqual(self.client.get('/api/profile', params={'user_id': 'alice'}).status_code, 404)

        data = self.create_profile()
        self.assertEqual(data['profile']['teamName'], 'Red')
        self.assertEqual(data['level']['level'], 1)

        response = self.client.get('/api/profile', params={'user_id': 'alice'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['win_rate'], 0)

        response = self.client.patch('/api/profile', json={'team_name': 'Blue', 'user_id': 'alice'})
        self.assertEqual(response.json()['profile']['teamName'], 'Blue')

        response = self.client.delete('/api/profile', params={'user_id': 'alice'})
        self.assertTrue(response.json()['cleared'])
        self.assertEqual(self.client.get('/api/profile', params={'user_id': 'alice'}).status_code, 404)

    def test_create_profile_validation(self):
        self.create_profile()
        response = self.client.post('/api/profile', json={'username': 'alice', 'user_id': 'alice'})
        self.assertEqual(response.status_code, 409)
        response = self.client.post('/api/profile', json={'username': '  ', 'user_id': 'bob'})
        self.assertEqual(response.status_code, 400)
        response = self.client.post('/api/profile', json={'username': 'bob', 'avatar_id': 'dragon', 'user_id': 'bob'})
        self.assertEqual(response.status_code, 400)

    def test_scenarios(self):
        scenarios = self.client.get('/api/scenarios').json()['scenarios']
        self.assertIn('sql-explainer', [s['id'] for s in scenarios])

    def test_start_battle_requires_profile(self):
        response = self.client.post('/api/battle/start', json={'user_id': 'nobody'})
        self.assertEqual(response.status_code, 404)

    def test_unknown_scenario(self):
        self.create_profile()
        response = self.client.post('/api/battle/start', json={'scenario_id': 'nope', 'user_id': 'alice'})
        self.assertEqual(response.status_code, 404)

    def test_battle_round(self):
        self.create_profile()
        response = self.client.post('/api/battle/start', json={'scenario_id': 'sql-explainer', 'user_id': 'alice'})
        state = response.json()
        self.assertEqual(state['phase'], 'scenario')
        self.assertEqual(state['countdown'], 15)
        self.assertIn('alice', app_module.timer_tasks)

        state = self.client.post('/api/battle/ready', json={'user_id': 'alice'}).json()
        self.assertEqual(state['phase'], 'crafting')
        self.assertEqual(state['time_remaining'], 120)
        self.assertEqual(self.client.post('/api/battle/ready', json={'user_id': 'alice'}).status_code, 409)

        response = self.client.post('/api/battle/draft', json={'text': 'You are', 'user_id': 'alice'})
        self.assertEqual(response.json()['length'], 7)

        self.provider.queue_content(evaluation_json(total=8.0))
        self.provider.queue_content('Customers who cancelled a paid plan this year, per region.')
        response = self.client.post('/api/battle/submit', json={'prompt': GOOD_PROMPT, 'user_id': 'alice'})

        self.assertEqual(response.status_code, 200)
        result = response.json()
        self.assertEqual(result['score'], 8.0)
        self.assertEqual(result['xp_earned'], 180)
        self.assertFalse(result['used_fallback'])
        self.assertTrue(result['persisted'])
        self.assertNotIn('alice', app_module.timer_tasks)

        state = self.client.get('/api/battle', params={'user_id': 'alice'}).json()
        self.assertEqual(state['phase'], 'results')
        self.assertEqual(state['results']['score'], 8.0)

    def test_submit_validation_and_conflict(self):
        self.create_profile()
        self.start_crafting()

        response = self.client.post('/api/battle/submit', json={'prompt': 'short', 'user_id': 'alice'})
        self.assertEqual(response.status_code, 400)

        response = self.client.post('/api/battle/submit', json={'prompt': GOOD_PROMPT, 'user_id': 'alice'})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['used_fallback'])

        response = self.client.post('/api/battle/submit', json={'prompt': GOOD_PROMPT, 'user_id': 'alice'})
        self.assertEqual(response.status_code, 409)

    def test_submit_without_battle(self):
        self.create_profile()
        response = self.client.post('/api/battle/submit', json={'prompt': GOOD_PROMPT, 'user_id': 'alice'})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self.client.get('/api/battle', params={'user_id': 'alice'}).status_code, 404)

    def test_cancel_battle(self):
        self.create_profile()
        self.start_crafting()
        self.assertTrue(self.client.delete('/api/battle', params={'user_id': 'alice'}).json()['cancelled'])
        self.assertNotIn('alice', app_module.timer_tasks)
        self.assertEqual(self.client.get('/api/battle', params={'user_id': 'alice'}).status_code, 404)

    def test_analyze(self):
        self.create_profile()
        self.provider.queue_content('Add an output format.')
        response = self.client.post('/api/battle/analyze', json={'prompt': GOOD_PROMPT, 'user_id': 'alice'})
        self.assertEqual(response.json(), {'success': True, 'feedback': 'Add an output format.'})

        self.provider.queue_failure('Request timed out')
        response = self.client.post('/api/battle/analyze', json={'prompt': GOOD_PROMPT, 'user_id': 'alice'})
        self.assertEqual(response.json(), {'success': False, 'error': 'Request timed out'})

    def test_history(self):
        self.create_profile()
        self.start_crafting()
        self.client.post('/api/battle/submit', json={'prompt': GOOD_PROMPT, 'user_id': 'alice'})

        data = self.client.get('/api/history', params={'user_id': 'alice'}).json()
        self.assertEqual(data['total'], 1)
        battle_id = data['battles'][0]['id']

        response = self.client.get(f'/api/history/{battle_id}', params={'user_id': 'alice'})
        self.assertEqual(response.json()['prompt'], GOOD_PROMPT)
        self.assertEqual(self.client.get('/api/history/missing', params={'user_id': 'alice'}).status_code, 404)

    def test_leaderboard_sync(self):
        self.create_profile()
        shared = {'players': [{'username': 'zed', 'xp': 1000}]}
        data = self.client.post('/api/leaderboard/sync', json={'shared': shared, 'user_id': 'alice'}).json()
        self.assertEqual([p['username'] for p in data['players']], ['zed', 'alice'])
        self.assertEqual(data['rank'], 2)

        data = self.client.get('/api/leaderboard', params={'user_id': 'alice'}).json()
        self.assertEqual(len(data['players']), 2)

    def test_leaderboard_sync_tolerates_hand_edited_snapshots(self):
        self.create_profile()
        shared_file = Path(self.tmp.name) / 'shared-leaderboard.json'
        shared_file.write_text(json.dumps([{'username': 'zed', 'xp': 1000}]))
        with patch.object(app_module, 'SHARED_LEADERBOARD_FILE', shared_file):
            response = self.client.post('/api/leaderboard/sync', json={'user_id': 'alice'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([p['username'] for p in response.json()['players']], ['alice'])

        shared = {'players': [{'username': 'bob', 'xp': '300'}]}
        response = self.client.post('/api/leaderboard/sync', json={'shared': shared, 'user_id': 'alice'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['rank'], 2)

    def test_export_import(self):
        self.create_profile()
        exported = self.client.get('/api/export', params={'user_id': 'alice'}).json()
        self.assertEqual(exported['version'], '1.0.0')

        response = self.client.post('/api/import', json={'data': exported, 'user_id': 'bob'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['profile']['username'], 'alice')

        response = self.client.post('/api/import', json={'data': {'version': '1.0.0'}, 'user_id': 'bob'})
        self.assertEqual(response.status_code, 400)

    def test_playground(self):
        self.create_profile()
        self.provider.queue_content('{"strengths": ["Clear"], "improvements": [], "recommendations": [], '
                                    '"qualityScore": 6, "qualityLabel": "Decent"}')
        response = self.client.post('/api/playground/review', json={'prompt': GOOD_PROMPT, 'user_id': 'alice'})
        self.assertEqual(response.json()['qualityScore'], 6)

        self.provider.queue_failure()
        response = self.client.post('/api/playground/review', json={'prompt': GOOD_PROMPT, 'user_id': 'alice'})
        self.assertEqual(response.status_code, 502)

        self.assertEqual(self.client.post('/api/playground/review', json={'prompt': ' ', 'user_id': 'alice'}).status_code, 400)

        self.client.post('/api/playground/save', json={'prompt': GOOD_PROMPT, 'score': 6, 'user_id': 'alice'})
        reviews = self.client.get('/api/playground/history', params={'user_id': 'alice'}).json()['reviews']
        self.assertEqual(len(reviews), 1)
        self.assertEqual(reviews[0]['score'], 6)

    def test_misc(self):
        self.create_profile()
        self.assertTrue(self.client.get('/api/tip').json()['tip'])
        self.assertEqual(self.client.get('/api/users').json()['users'], ['alice'])
        self.assertEqual(self.client.get('/api/stats').json()['provider'], 'mock-model')


class TestBattleTimer(unittest.IsolatedAsyncioTestCase):
    """Timer expiry runs the same submit path as a manual submit."""

    async def asyncSetUp(self):
        self.provider = MockAIProvider()
        app_module.storage = MockStorage()
        app_module.coach = PromptCoach(self.provider)
        app_module.sessions.clear()
        app_module.timer_tasks.clear()
        self.ctx = SessionContext(app_module.storage, app_module.coach, 'alice',
                                  scenario_countdown=1, time_limit=2)
        self.ctx.create_profile('alice')
        app_module.sessions['alice'] = self.ctx

    async def test_expiry_submits_draft(self):
        battle = self.ctx.start_battle()
        battle.update_draft('You are a tester. List bugs.')

        with patch.object(app_module, 'TICK_SECONDS', 0):
            await app_module.run_battle_timer('alice')

        self.assertEqual(battle.phase, Phase.RESULTS)
        self.assertEqual(battle.results['battle']['prompt'], 'You are a tester. List bugs.')
        self.assertEqual(self.ctx.profile.total_battles, 1)

    async def test_expiry_with_short_draft_keeps_round_open(self):
        battle = self.ctx.start_battle()
        battle.update_draft('short')

        with patch.object(app_module, 'TICK_SECONDS', 0):
            await app_module.run_battle_timer('alice')

        self.assertEqual(battle.phase, Phase.CRAFTING)
        self.assertTrue(battle.timed_out)
        self.assertEqual(self.ctx.profile.total_battles, 0)

    async def test_manual_submit_stops_timer(self):
        battle = self.ctx.start_battle()
        battle.start_crafting()
        with patch.object(app_module, 'TICK_SECONDS', 0.01):
            task = asyncio.create_task(app_module.run_battle_timer('alice'))
            app_module.timer_tasks['alice'] = task
            results = await app_module.submit_round(self.ctx, 'You are a tester. List bugs.')
            await asyncio.sleep(0.05)

        self.assertTrue(task.done())
        self.assertEqual(results['battle']['prompt'], 'You are a tester. List bugs.')
        self.assertEqual(self.ctx.profile.total_battles, 1)
        self.assertNotIn('alice', app_module.timer_tasks)


if __name__ == '__main__':
    unittest.main()
