#!/usr/bin/env python3
"""Compare prompt evaluation between Gemini models."""

import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.coach import PromptCoach
from core.config import load_config
from core.scenarios import get_all_scenarios
from server.gemini_provider import GeminiProvider

SAMPLE_PROMPT = (
    "You are a support lead. Group these emails by issue type as a bullet list, "
    "flag anything urgent, and suggest an owner for each group."
)


def get_api_key():
    """Get API key from env or config file."""
    api_key = os.environ.get('GEMINI_API_KEY')
    if not api_key:
        try:
            api_key = load_config().get('gemini_api_key')
        except FileNotFoundError:
            pass
    return api_key


def main():
    api_key = get_api_key()
    if not api_key:
        print("Error: GEMINI_API_KEY not found")
        return 1

    scenario = get_all_scenarios()[0]
    models = sys.argv[1:] or ['gemini-2.0-flash', 'gemini-2.5-pro']
    rows = []

    print(f"Evaluating sample prompt for scenario: {scenario.title}\n")
    print("=" * 80)
    for model in models:
        print(f"\n[{model}]\n")
        provider = GeminiProvider(api_key, model_name=model)
        result = PromptCoach(provider).evaluate_prompt(SAMPLE_PROMPT, scenario)
        stats = provider.get_stats()
        print(f"Score: {result.total_score} {'(offline fallback)' if result.is_fallback else ''}")
        print(f"Scores: {result.scores}")
        for strength in result.feedback['strengths']:
            print(f"  + {strength}")
        for improvement in result.feedback['improvements']:
            print(f"  - {improvement}")
        rows.append((model, result.total_score, stats['total_ms'], stats['total_tokens']))
        print("\n" + "-" * 80)

    print("\n[COMPARISON SUMMARY]\n")
    print(f"{'Model':<25} {'Score':<10} {'Time (ms)':<12} {'Tokens':<10}")
    print("-" * 60)
    for model, score, ms, tokens in rows:
        print(f"{model:<25} {score:<10} {ms:<12} {tokens:<10}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
