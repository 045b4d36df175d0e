"""Static scenario catalog, avatars and quick tips."""

import random

from .config import TIPS
from .models import Scenario

SCENARIO_DATA = [
    {
        'id': 'customer-email-summary',
        'title': 'Customer Email Triage',
        'description': 'Write a prompt that turns a batch of customer emails into a triage summary '
                       'the support lead can act on in under a minute.',
        'criteria': [
            'Groups emails by issue type',
            'Flags urgent messages',
            'Suggests an owner for each group',
            'Fits on one screen'
        ],
        'data': (
            "1. \"My order #4471 arrived broken, I need a replacement before Friday.\"\n"
            "2. \"How do I change the email on my account?\"\n"
            "3. \"Charged twice for invoice 2210!! Fix this today.\"\n"
            "4. \"Love the new dashboard, any plans for dark mode?\"\n"
            "5. \"Password reset link never arrives.\""
        ),
        'poorPrompt': 'Summarize these emails.',
        'poorPromptIssues': [
            'No output structure requested',
            'Does not ask for urgency',
            'No audience or role defined'
        ]
    },
    {
        'id': 'meeting-action-items',
        'title': 'Meeting Action Items',
        'description': 'Extract a clean list of action items from raw meeting notes.',
        'criteria': [
            'Each item has an owner',
            'Each item has a due date or "TBD"',
            'No discussion noise in the output'
        ],
        'data': (
            "Sam: we should really ship the pricing page by the 12th\n"
            "Priya: I can take the copy, need design by Tuesday\n"
            "Lee: design is fine, but legal needs to review the refund wording\n"
            "Sam: ok Lee pings legal. Also someone update the FAQ\n"
            "Priya: I'll do the FAQ after the copy"
        ),
        'poorPrompt': 'What are the action items?',
        'poorPromptIssues': [
            'No format for owners and dates',
            'Does not say how to handle missing dates'
        ]
    },
    {
        'id': 'sql-explainer',
        'title': 'Explain a SQL Query',
        'description': 'Get a plain-language explanation of a SQL query for a non-technical manager.',
        'criteria': [
            'Avoids jargon',
            'Explains what the result represents',
            'Mentions any filters that could surprise the reader'
        ],
        'data': (
            "SELECT region, COUNT(*) AS churned\n"
            "FROM customers\n"
            "WHERE cancelled_at >= DATE '2024-01-01'\n"
            "  AND plan <> 'free'\n"
            "GROUP BY region\n"
            "ORDER BY churned DESC;"
        ),
        'poorPrompt': 'Explain this SQL.',
        'poorPromptIssues': [
            'Audience not specified',
            'No length or tone constraints'
        ]
    },
    {
        'id': 'product-description',
        'title': 'Product Description Rewrite',
        'description': 'Rewrite a dry spec sheet into a short product description for an online store.',
        'criteria': [
            'Under 80 words',
            'Leads with the main benefit',
            'Keeps all factual specs accurate'
        ],
        'data': (
            "Model: TrailLite 2\n"
            "Weight: 1.1 kg\n"
            "Capacity: 2 people\n"
            "Setup time: 3 minutes\n"
            "Waterproof rating: 3000 mm\n"
            "Packed size: 40 x 15 cm"
        ),
        'poorPrompt': 'Make this sound good.',
        'poorPromptIssues': [
            'No length limit',
            'Does not require factual accuracy',
            'No target audience'
        ]
    },
    {
        'id': 'bug-report-structuring',
        'title': 'Structure a Bug Report',
        'description': 'Convert a rambling user complaint into a structured bug report for engineers.',
        'criteria': [
            'Has steps to reproduce',
            'Separates expected and actual behaviour',
            'Lists environment details that are known'
        ],
        'data': (
            "so I was on my phone (android, chrome i think) trying to upload a profile picture "
            "and it just spins forever. on my laptop it works. tried 3 times. the picture is "
            "kind of big maybe 12MB? anyway it's annoying and my friend has the same issue"
        )
    },
    {
        'id': 'data-to-table',
        'title': 'Sales Data to Table',
        'description': 'Turn unstructured sales notes into a markdown table with totals.',
        'criteria': [
            'Valid markdown table',
            'One row per rep',
            'Includes a total row',
            'Numbers are not invented'
        ],
        'data': (
            "Ana closed 3 deals this week worth 4k, 2.5k and 10k.\n"
            "Ben closed one deal for 7k.\n"
            "Chloe had no closed deals but two in negotiation (5k, 6k)."
        ),
        'poorPrompt': 'Put this in a table.',
        'poorPromptIssues': [
            'Does not say how to treat deals in negotiation',
            'No columns specified'
        ]
    }
]

SCENARIOS = [Scenario.from_dict(item) for item in SCENARIO_DATA]

AVATARS = [
    {'id': 'robot', 'name': 'Robot'},
    {'id': 'wizard', 'name': 'Wizard'},
    {'id': 'ninja', 'name': 'Ninja'},
    {'id': 'astronaut', 'name': 'Astronaut'},
    {'id': 'detective', 'name': 'Detective'},
    {'id': 'scientist', 'name': 'Scientist'}
]


def get_all_scenarios() -> list[Scenario]:
    return list(SCENARIOS)


def get_scenario(scenario_id: str) -> Scenario | None:
    for scenario in SCENARIOS:
        if scenario.id == scenario_id:
            return scenario
    return None


def random_scenario(exclude_id: str = None) -> Scenario:
    """Pick a random scenario, avoiding an immediate repeat when possible."""
    candidates = [s for s in SCENARIOS if s.id != exclude_id] or SCENARIOS
    return random.choice(candidates)


def get_avatar(avatar_id: str) -> dict | None:
    for avatar in AVATARS:
        if avatar['id'] == avatar_id:
            return avatar
    return None


def random_tip() -> str:
    return random.choice(TIPS)
