"""Evaluation result normalizer and heuristic fallback scorer."""

import json
import logging
import math
import re

from .config import MAX_SCORE, SUB_SCORE_MAX
from .models import EvaluationResult

logger = logging.getLogger(__name__)

ROLE_PATTERN = re.compile(r'you are|act as|as a', re.IGNORECASE)
FORMAT_PATTERN = re.compile(r'format|json|list|table|bullet', re.IGNORECASE)
EXAMPLE_PATTERN = re.compile(r'example|for instance|such as', re.IGNORECASE)

FEEDBACK_KEYS = ('strengths', 'improvements', 'tips')


class EvaluationParseError(ValueError):
    """Evaluator output could not be decoded into an EvaluationResult."""


def _extract_json(content: str) -> str:
    return content[content.find('{'):content.rfind('}') + 1]


def _is_number(value) -> bool:
    # json.loads accepts NaN and Infinity
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _clamp(name: str, value: float, upper: float) -> float:
    if value < 0 or value > upper:
        logger.warning(f"Evaluator returned out-of-range {name}={value}, clamping to [0, {upper}]")
        return min(max(value, 0), upper)
    return value


def _diagnose(content: str) -> str:
    if '{' not in content:
        return "No opening brace '{' found in response"
    if '}' not in content:
        return "No closing brace '}' found in response"
    if '"total_score"' not in content:
        return "'total_score' key not found in response"
    return "Unknown parsing issue - possibly malformed JSON"


def parse_evaluation(content: str) -> EvaluationResult:
    """Strictly decode evaluator text into an EvaluationResult.

    The JSON object may be wrapped in prose or a code fence. Sub-scores and
    the total are clamped into their ranges; the reported total is kept even
    when it disagrees with the sum of the sub-scores.

    Raises EvaluationParseError on malformed JSON or missing fields.
    """
    if not isinstance(content, str):
        raise EvaluationParseError("Evaluator content is not text")

    try:
        data = json.loads(_extract_json(content))
    except json.JSONDecodeError as e:
        raise EvaluationParseError(f"{e}; {_diagnose(content)}") from e

    if not isinstance(data, dict):
        raise EvaluationParseError("Evaluator response is not a JSON object")

    raw_scores = data.get('scores')
    if not isinstance(raw_scores, dict):
        raise EvaluationParseError("Missing 'scores' object")
    scores = {}
    for key, upper in SUB_SCORE_MAX.items():
        value = raw_scores.get(key)
        if not _is_number(value):
            raise EvaluationParseError(f"Missing or non-numeric score '{key}'")
        scores[key] = _clamp(key, value, upper)

    total = data.get('total_score')
    if not _is_number(total):
        raise EvaluationParseError("Missing or non-numeric 'total_score'")
    total = _clamp('total_score', total, MAX_SCORE)
    if abs(total - sum(scores.values())) > 0.05:
        logger.info(f"total_score {total} differs from sub-score sum {sum(scores.values())}; keeping total_score")

    raw_feedback = data.get('feedback')
    if not isinstance(raw_feedback, dict):
        raise EvaluationParseError("Missing 'feedback' object")
    feedback = {}
    for key in FEEDBACK_KEYS:
        items = raw_feedback.get(key)
        if not isinstance(items, list):
            raise EvaluationParseError(f"Missing feedback list '{key}'")
        feedback[key] = [str(item) for item in items]

    return EvaluationResult(scores, total, feedback)


def heuristic_evaluation(prompt: str) -> EvaluationResult:
    """Deterministic local scorer used when the evaluator is unavailable.

    Base 5, plus one point each for a role definition, an output format, an
    example, and a length strictly between 50 and 500 characters; capped at 10.
    """
    length = len(prompt)
    has_role = bool(ROLE_PATTERN.search(prompt))
    has_format = bool(FORMAT_PATTERN.search(prompt))
    has_example = bool(EXAMPLE_PATTERN.search(prompt))

    base_score = 5
    if has_role:
        base_score += 1
    if has_format:
        base_score += 1
    if has_example:
        base_score += 1
    if 50 < length < 500:
        base_score += 1

    total_score = min(base_score, MAX_SCORE)

    return EvaluationResult(
        scores={
            'ai_evaluation': min(total_score * 0.4, 4),
            'format_quality': 1.5 if has_format else 1,
            'efficiency': 1.5 if length < 500 else 1,
            'technical_accuracy': 1.5 if has_role else 1
        },
        total_score=total_score,
        feedback={
            'strengths': [
                "Good use of role definition" if has_role else "Prompt is clear",
                "Specifies output format" if has_format else "Addresses the task"
            ],
            'improvements': [
                "Consider defining a role for the AI" if not has_role else "Try adding more specific constraints",
                "Specify the desired output format" if not has_format else "Consider adding examples"
            ],
            'tips': [
                "Be specific about what you want the AI to do",
                "Use structured formatting for complex tasks"
            ]
        },
        is_fallback=True
    )


def normalize_evaluation(result: dict, prompt: str) -> EvaluationResult:
    """Turn a provider result into an EvaluationResult. Never raises.

    Upstream failures and unparsable content both fall back to the
    heuristic scorer.
    """
    if not result or not result.get('success'):
        error = result.get('error') if result else 'no result'
        logger.error(f"Failed to evaluate prompt: {error}")
        logger.warning("Using fallback evaluation")
        return heuristic_evaluation(prompt)

    content = result.get('content')
    try:
        evaluation = parse_evaluation(content)
    except EvaluationParseError as e:
        logger.error(f"Error parsing evaluation response: {e}")
        logger.error(f"Raw response:\n{content}")
        logger.warning("Using fallback evaluation")
        return heuristic_evaluation(prompt)

    logger.info(f"Prompt evaluation completed: total_score={evaluation.total_score}")
    return evaluation
