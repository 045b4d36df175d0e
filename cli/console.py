"""Console UI for prompt battle application."""

import json

import requests

from core.config import MIN_PROMPT_LENGTH, WIN_SCORE_THRESHOLD
from core.utils import truncate
from cli.api_client import PromptBattleAPIClient

MENU = ('[b]attle  [p]rofile  [c]hange profile  [h]istory  [l]eaderboard  [s]ync leaderboard\n'
        '[r]eview  [e]xport  [i]mport  [t]ip  [x] clear data  [q]uit')


def error_detail(e: Exception) -> str:
    """Pull the server's error detail out of an HTTPError."""
    if isinstance(e, requests.HTTPError) and e.response is not None:
        try:
            return e.response.json().get('detail', str(e))
        except ValueError:
            pass
    return str(e)


def format_time(seconds: int) -> str:
    return f"{seconds // 60}:{seconds % 60:02d}"


class ConsoleUI:
    """Console user interface for prompt battle application."""

    def __init__(self, client: PromptBattleAPIClient):
        self.client = client

    def print_profile(self, data: dict):
        """Print profile, level progress and stats."""
        profile = data['profile']
        level = data['level']
        print('\n' + '=' * 50)
        team = f" [{profile['teamName']}]" if profile.get('teamName') else ''
        print(f"{profile['username']}{team}")
        print('=' * 50)
        print(f"Level {level['level']}: {level['name']}")
        bar_width = 30
        filled = int(level['progress'] * bar_width)
        print(f"[{'#' * filled}{'.' * (bar_width - filled)}] {profile['xp']} XP, {level['xp_to_next']} to next")
        print(f"\nBattles: {profile['totalBattles']}  Wins: {profile['totalWins']}  Win rate: {data['win_rate']}%")
        print(f"Best score: {profile['bestScore']}  Perfect scores: {profile['perfectScores']}")
        print(f"Streak: {profile['currentStreak']} (longest {profile['longestStreak']})")
        print('=' * 50 + '\n')

    def print_scenario(self, scenario: dict):
        print('\n' + '=' * 60)
        print(f"SCENARIO: {scenario['title']}")
        print('=' * 60)
        print(scenario['description'])
        print('\nCriteria:')
        for criterion in scenario['criteria']:
            print(f'  - {criterion}')
        print('\nData:')
        for line in scenario['data'].splitlines():
            print(f'  {line}')
        if scenario.get('poorPrompt'):
            print(f"\nDon't write: \"{scenario['poorPrompt']}\"")
            for issue in scenario.get('poorPromptIssues', []):
                print(f'  x {issue}')
        print('=' * 60)

    def print_results(self, result: dict):
        """Print evaluation results."""
        evaluation = result['evaluation']
        scores = evaluation['scores']
        print('\n' + '-' * 50)
        verdict = 'WIN' if result['score'] >= WIN_SCORE_THRESHOLD else 'Keep practicing'
        print(f"Score: {result['score']}/10  ({verdict})")
        if result['used_fallback']:
            print('(AI evaluation unavailable, scored offline)')
        print(f"  AI evaluation:      {scores['ai_evaluation']}/4")
        print(f"  Format quality:     {scores['format_quality']}/2")
        print(f"  Efficiency:         {scores['efficiency']}/2")
        print(f"  Technical accuracy: {scores['technical_accuracy']}/2")
        for title, key in (('Strengths', 'strengths'), ('Improvements', 'improvements'), ('Tips', 'tips')):
            items = evaluation['feedback'].get(key) or []
            if items:
                print(f'\n{title}:')
                for item in items:
                    print(f'  - {item}')
        print('\nAI output:')
        print(result['ai_output'])
        print('-' * 50)

        progress = result['progress']
        print(f"+{result['xp_earned']} XP (base {progress['base_xp']}, score {progress['score_xp']}, "
              f"bonus {progress['bonus_xp']})")
        if progress['level_changed']:
            print(f"\n*** LEVEL UP! Now {result['level']['name']} (level {progress['new_level']}) ***\n")
        if not result['persisted']:
            print('Warning: progress could not be saved')

    def onboard(self) -> dict:
        """Create a profile interactively."""
        print('\nWelcome to Prompt Battle! Let\'s set up your profile.')
        avatars = self.client.get_avatars()['avatars']
        while True:
            username = input('Username: ').strip()
            if username:
                break
            print('Please enter a username.')
        print('Avatars: ' + ', '.join(a['id'] for a in avatars))
        avatar_id = input('Avatar (enter to skip): ').strip() or None
        team_name = input('Team name (optional): ').strip()
        try:
            self.client.create_profile(username, avatar_id, team_name)
        except requests.HTTPError as e:
            print(f"Error: {error_detail(e)}")
            return self.onboard()
        return self.client.get_profile()

    def play_battle(self):
        """Run one round: scenario, crafting, results."""
        battle = self.client.start_battle()
        self.print_scenario(battle['scenario'])
        input(f"\nYou have {battle['countdown']}s to read. Press enter when ready... ")
        try:
            battle = self.client.ready()
        except requests.HTTPError:
            # Countdown already ran out
            battle = self.client.get_battle()

        print(f"\nWrite your prompt ({format_time(battle['time_remaining'])} left).")
        print('Enter lines of text; an empty line submits. Commands: /analyze, /poor, /time, /cancel\n')
        lines = []
        while True:
            line = input('> ')
            command = line.strip().lower()
            if command == '/cancel':
                self.client.cancel_battle()
                print('Battle cancelled.')
                return
            if command == '/time':
                state = self.client.get_battle()
                print(f"{format_time(state['time_remaining'])} left ({state['timer_state']})")
                continue
            if command == '/poor':
                scenario = battle['scenario']
                if scenario.get('poorPrompt'):
                    print(f"Poor example: \"{scenario['poorPrompt']}\"")
                    for issue in scenario.get('poorPromptIssues', []):
                        print(f'  x {issue}')
                    if input('Use it as your draft? [y/N] ').strip().lower() == 'y':
                        lines = scenario['poorPrompt'].splitlines()
                        self.client.update_draft('\n'.join(lines))
                        print('Draft replaced. Keep typing to improve it, or enter an empty line to submit.')
                else:
                    print('No poor example for this scenario.')
                continue
            if command == '/analyze':
                analysis = self.client.analyze_prompt('\n'.join(lines))
                print(analysis.get('feedback') if analysis['success'] else f"Analysis failed: {analysis['error']}")
                continue
            if line == '':
                prompt = '\n'.join(lines)
                if len(prompt.strip()) < MIN_PROMPT_LENGTH:
                    print(f'Please write a prompt (at least {MIN_PROMPT_LENGTH} characters)')
                    continue
                break
            lines.append(line)
            try:
                self.client.update_draft('\n'.join(lines))
            except requests.HTTPError:
                # Timer expired and the draft was submitted for us
                break

        print('Evaluating your prompt...')
        try:
            result = self.client.submit_prompt('\n'.join(lines))
        except requests.HTTPError as e:
            if e.response is None or e.response.status_code != 409:
                print(f"Error submitting prompt: {error_detail(e)}")
                return
            result = self.client.get_battle().get('results')
            if result is None:
                print("Time's up! Your draft was submitted.")
                return
        self.print_results(result)

    def print_history(self):
        data = self.client.get_history()
        if not data['battles']:
            print('No battles yet.')
            return
        print(f"\nLast {len(data['battles'])} of {data['total']} battles:")
        for battle in data['battles']:
            print(f"  {battle['date'][:10]}  {battle['score']:>4}  +{battle['xpEarned']} XP  {truncate(battle['scenarioTitle'], 40)}")

    def print_leaderboard(self, data: dict):
        if not data['players']:
            print('Leaderboard is empty. Sync to merge the shared file.')
            return
        print('\nLEADERBOARD')
        for i, player in enumerate(data['players'], 1):
            print(f"  {i:>2}. {player['username']:<20} L{player['level']}  {player['xp']} XP")
        if data.get('rank'):
            print(f"Your rank: #{data['rank']}")

    def edit_profile(self):
        avatars = self.client.get_avatars()['avatars']
        print('Avatars: ' + ', '.join(a['id'] for a in avatars))
        avatar_id = input('New avatar (enter to keep): ').strip() or None
        team_name = input('New team name (enter to keep): ').strip() or None
        if avatar_id is None and team_name is None:
            return
        self.client.update_profile(avatar_id, team_name)
        print('Profile updated.')

    def clear_data(self) -> bool:
        """Wipe the player's data after confirmation. Returns True if cleared."""
        if input('Delete your profile, history and reviews? Type "yes" to confirm: ').strip().lower() != 'yes':
            return False
        self.client.clear_data()
        print('All data cleared.')
        return True

    def playground(self):
        prompt = input('Prompt to review: ').strip()
        if not prompt:
            return
        context = input('Context (optional): ').strip()
        print('Reviewing...')
        try:
            review = self.client.review_prompt(prompt, context)
        except requests.HTTPError as e:
            print(f"Error: {error_detail(e)}")
            return
        print(f"\nQuality: {review['qualityScore']}/10 {review['qualityLabel']}")
        for title in ('strengths', 'improvements', 'recommendations'):
            if review[title]:
                print(f'\n{title.capitalize()}:')
                for item in review[title]:
                    print(f'  - {item}')
        if review.get('improvedVersion'):
            print(f"\nImproved version:\n{review['improvedVersion']}")
        if input('\nSave this review? [y/N] ').strip().lower() == 'y':
            self.client.save_review(prompt, context, review['qualityScore'])
            print('Saved.')

    def export(self):
        path = input('Export to file [prompt-battle-export.json]: ').strip() or 'prompt-battle-export.json'
        with open(path, 'w') as f:
            json.dump(self.client.export_data(), f, indent=2)
        print(f'Exported to {path}')

    def import_file(self):
        path = input('Import from file: ').strip()
        try:
            with open(path, 'r') as f:
                data = json.load(f)
            self.client.import_data(data)
            print('Profile imported.')
        except (OSError, json.JSONDecodeError) as e:
            print(f"Could not read {path}: {e}")
        except requests.HTTPError as e:
            print(f"Import failed: {error_detail(e)}")

    def run(self):
        """Run the main application loop."""
        # Check server connection
        try:
            health = self.client.health_check()
            print(f"Connected to {health['name']} (storage: {health['storage']})")
        except requests.RequestException:
            print(f"Error: Cannot connect to server at {self.client.base_url}")
            print("Make sure the server is running: python run_server.py")
            return

        profile = self.client.get_profile() or self.onboard()
        self.print_profile(profile)

        while True:
            print(MENU)
            choice = input('==> ').strip().lower()
            try:
                if choice in ('q', 'quit', 'exit'):
                    print('Goodbye!')
                    return
                elif choice == 'b':
                    self.play_battle()
                elif choice == 'p':
                    self.print_profile(self.client.get_profile())
                elif choice == 'h':
                    self.print_history()
                elif choice == 'c':
                    self.edit_profile()
                elif choice == 'l':
                    self.print_leaderboard(self.client.get_leaderboard())
                elif choice == 's':
                    self.print_leaderboard(self.client.sync_leaderboard())
                elif choice == 'r':
                    self.playground()
                elif choice == 'e':
                    self.export()
                elif choice == 'i':
                    self.import_file()
                elif choice == 't':
                    print(f"Tip: {self.client.get_tip()['tip']}")
                elif choice == 'x':
                    if self.clear_data():
                        self.print_profile(self.onboard())
            except requests.RequestException as e:
                print(f"Error: {error_detail(e)}")
