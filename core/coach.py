"""Prompt evaluation, execution and review through an AI provider."""

import json
import logging

from .interfaces import AIProvider
from .evaluation import normalize_evaluation
from .models import EvaluationResult, Scenario

logger = logging.getLogger(__name__)

EVALUATOR_SYSTEM_PROMPT = """You are an expert prompt engineering evaluator. You will evaluate prompts based on:
1. AI Evaluation (40%): How well would this prompt work with an AI to accomplish the task?
2. Format Quality (20%): Is the prompt well-structured, clear, and properly formatted?
3. Efficiency (20%): Is the prompt concise yet complete? Does it avoid unnecessary words?
4. Technical Accuracy (20%): Does it use proper prompt engineering techniques (role definition, output format, examples, etc.)?

Score each category from 0-2.5 points (where 2.5 is excellent). Provide specific feedback."""

REVIEW_SYSTEM_PROMPT = """You are an expert prompt engineering coach. Provide detailed, constructive feedback on prompts.

Analyze the prompt on these dimensions:
1. Clarity and specificity
2. Structure and formatting
3. Role definition
4. Output format specification
5. Use of examples and constraints
6. Overall effectiveness

Provide your analysis in this JSON format:
{
    "strengths": ["strength1", "strength2", "strength3"],
    "improvements": ["improvement1", "improvement2", "improvement3"],
    "recommendations": ["specific recommendation1", "specific recommendation2"],
    "qualityScore": <number 0-10>,
    "qualityLabel": "<brief assessment>",
    "improvedVersion": "<optional: improved version of the prompt if significant issues found>"
}"""

ANALYZE_SYSTEM_PROMPT = ('You are a prompt engineering assistant. Analyze the given prompt and provide '
                         'quick feedback on its structure and potential effectiveness.')


class PromptCoach:
    """Builds evaluator conversations and runs them on an AIProvider.

    A coach without a provider reports every call as failed, which makes
    evaluation fall back to the heuristic scorer.
    """

    def __init__(self, provider: AIProvider | None):
        self.provider = provider

    def _call(self, messages: list[dict], **options) -> dict:
        if self.provider is None:
            return {'success': False, 'error': 'No AI provider configured'}
        return self.provider.chat_completion(messages, **options)

    def evaluate_prompt(self, prompt: str, scenario: Scenario) -> EvaluationResult:
        logger.info(f"Evaluating prompt for scenario: {scenario.title}")
        messages = [
            {'role': 'system', 'content': EVALUATOR_SYSTEM_PROMPT},
            {
                'role': 'user',
                'content': f"""Scenario: {scenario.title}
Description: {scenario.description}
Criteria: {', '.join(scenario.criteria)}

User's Prompt:
{prompt}

Please evaluate this prompt and return a JSON response with this structure:
{{
    "scores": {{
        "ai_evaluation": <number 0-4>,
        "format_quality": <number 0-2>,
        "efficiency": <number 0-2>,
        "technical_accuracy": <number 0-2>
    }},
    "total_score": <number 0-10>,
    "feedback": {{
        "strengths": ["<strength 1>", "<strength 2>"],
        "improvements": ["<improvement 1>", "<improvement 2>"],
        "tips": ["<tip 1>", "<tip 2>"]
    }}
}}"""
            }
        ]
        result = self._call(messages, temperature=0.3)
        return normalize_evaluation(result, prompt)

    def execute_prompt(self, prompt: str, scenario_data: str) -> dict:
        """Run the player's prompt against the scenario data."""
        logger.info("Executing user prompt with scenario data")
        messages = [{'role': 'user', 'content': f"{prompt}\n\nData:\n{scenario_data}"}]
        return self._call(messages)

    def analyze_prompt(self, prompt: str) -> dict:
        """Quick 2-3 sentence structural feedback while crafting."""
        logger.info("Analyzing prompt structure")
        messages = [
            {'role': 'system', 'content': ANALYZE_SYSTEM_PROMPT},
            {'role': 'user', 'content': f"Analyze this prompt and provide brief feedback (2-3 sentences):\n\n{prompt}"}
        ]
        return self._call(messages, max_tokens=500, temperature=0.5)

    def review_prompt(self, prompt: str, context: str = '') -> dict | None:
        """Detailed playground review. Returns the review dict or None."""
        user_content = (f"Context: {context}\n\nPrompt to review:\n{prompt}" if context
                        else f"Prompt to review:\n{prompt}")
        messages = [
            {'role': 'system', 'content': REVIEW_SYSTEM_PROMPT},
            {'role': 'user', 'content': user_content}
        ]
        result = self._call(messages, temperature=0.3)
        if not result.get('success'):
            logger.error(f"Playground review failed: {result.get('error')}")
            return None

        content = result.get('content') or ''
        try:
            review = json.loads(content[content.find('{'):content.rfind('}') + 1])
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing playground review: {e}")
            logger.error(f"Raw response:\n{content}")
            return None
        if not isinstance(review, dict):
            logger.warning(f"Review response is not a dict: {type(review)}")
            return None

        score = review.get('qualityScore')
        return {
            'strengths': list(review.get('strengths') or []),
            'improvements': list(review.get('improvements') or []),
            'recommendations': list(review.get('recommendations') or []),
            'qualityScore': score if isinstance(score, (int, float)) and not isinstance(score, bool) else 0,
            'qualityLabel': review.get('qualityLabel') or '',
            'improvedVersion': (review.get('improvedVersion') or '').strip() or None
        }
