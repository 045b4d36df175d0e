"""REST API client for prompt battle server."""

import requests


class PromptBattleAPIClient:
    """Client for communicating with the prompt battle REST API."""

    def __init__(self, base_url: str = "http://localhost:8000", user_id: str = "default"):
        self.base_url = base_url.rstrip('/')
        self.user_id = user_id
        self.session = requests.Session()

    def _get(self, endpoint: str, params: dict = None) -> dict:
        """Make a GET request."""
        if params is None:
            params = {}
        params['user_id'] = self.user_id
        response = self.session.get(f"{self.base_url}{endpoint}", params=params)
        response.raise_for_status()
        return response.json()

    def _post(self, endpoint: str, data: dict = None) -> dict:
        """Make a POST request."""
        data = dict(data or {})
        data['user_id'] = self.user_id
        response = self.session.post(f"{self.base_url}{endpoint}", json=data)
        response.raise_for_status()
        return response.json()

    def _patch(self, endpoint: str, data: dict) -> dict:
        data = dict(data)
        data['user_id'] = self.user_id
        response = self.session.patch(f"{self.base_url}{endpoint}", json=data)
        response.raise_for_status()
        return response.json()

    def _delete(self, endpoint: str) -> dict:
        response = self.session.delete(f"{self.base_url}{endpoint}", params={'user_id': self.user_id})
        response.raise_for_status()
        return response.json()

    def health_check(self) -> dict:
        """Check if the server is running."""
        response = self.session.get(f"{self.base_url}/")
        response.raise_for_status()
        return response.json()

    def get_profile(self) -> dict | None:
        """Get the profile, or None if the player has not onboarded."""
        try:
            return self._get("/api/profile")
        except requests.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                return None
            raise

    def create_profile(self, username: str, avatar_id: str = None, team_name: str = '') -> dict:
        return self._post("/api/profile", {
            'username': username,
            'avatar_id': avatar_id,
            'team_name': team_name
        })

    def update_profile(self, avatar_id: str = None, team_name: str = None) -> dict:
        return self._patch("/api/profile", {'avatar_id': avatar_id, 'team_name': team_name})

    def clear_data(self) -> dict:
        return self._delete("/api/profile")

    def get_avatars(self) -> dict:
        return self._get("/api/avatars")

    def start_battle(self, scenario_id: str = None) -> dict:
        return self._post("/api/battle/start", {'scenario_id': scenario_id})

    def get_battle(self) -> dict:
        return self._get("/api/battle")

    def ready(self) -> dict:
        """Skip the scenario countdown."""
        return self._post("/api/battle/ready")

    def update_draft(self, text: str) -> dict:
        return self._post("/api/battle/draft", {'text': text})

    def analyze_prompt(self, prompt: str) -> dict:
        return self._post("/api/battle/analyze", {'prompt': prompt})

    def submit_prompt(self, prompt: str = None) -> dict:
        """Submit a prompt for evaluation (blocks until scored)."""
        return self._post("/api/battle/submit", {'prompt': prompt})

    def cancel_battle(self) -> dict:
        return self._delete("/api/battle")

    def get_history(self, limit: int = 10) -> dict:
        return self._get("/api/history", {'limit': limit})

    def get_leaderboard(self) -> dict:
        return self._get("/api/leaderboard")

    def sync_leaderboard(self, shared: dict = None) -> dict:
        return self._post("/api/leaderboard/sync", {'shared': shared})

    def export_data(self) -> dict:
        return self._get("/api/export")

    def import_data(self, data: dict) -> dict:
        return self._post("/api/import", {'data': data})

    def review_prompt(self, prompt: str, context: str = '') -> dict:
        return self._post("/api/playground/review", {'prompt': prompt, 'context': context})

    def save_review(self, prompt: str, context: str = '', score: float = None) -> dict:
        return self._post("/api/playground/save", {'prompt': prompt, 'context': context, 'score': score})

    def get_tip(self) -> dict:
        return self._get("/api/tip")
