"""Round-two question pools and assessment criteria."""
import random

from .store import get_store

SETTINGS_COLLECTION = "settings"
POOLS_DOC = "interviewQuestionPools"

# one question is drawn from each pool per candidate
DEFAULT_POOLS = (
    # leadership
    (
        {'id': 'leadership-1', 'text': 'Describe a time when you demonstrated leadership skills.'},
        {'id': 'leadership-2', 'text': 'Tell us about a time you had to motivate a group that had lost interest.'},
        {'id': 'leadership-3', 'text': 'What would you want to be remembered for at the end of the year in this role?'},
    ),
    # teamwork
    (
        {'id': 'teamwork-1', 'text': 'How do you handle conflicts within a team?'},
        {'id': 'teamwork-2', 'text': 'Tell us about a time you had to mediate between creative differences in a team.'},
        {'id': 'teamwork-3', 'text': 'How would you help two student groups with different opinions reach an agreement?'},
    ),
    # initiative
    (
        {'id': 'initiative-1', 'text': 'Tell us about a project you initiated on your own.'},
        {'id': 'initiative-2', 'text': 'If you could run only one major event this year, what would it be and why?'},
        {'id': 'initiative-3', 'text': 'What is the biggest challenge in getting students excited about school events, and how would you solve it?'},
    ),
    # commitment
    (
        {'id': 'commitment-1', 'text': 'How will you balance SAC responsibilities with your studies?'},
        {'id': 'commitment-2', 'text': 'Give an example of planning something under a tight deadline. What steps did you take?'},
        {'id': 'commitment-3', 'text': 'How can you stay involved with council during the slower parts of the year?'},
    ),
)

ASSESSMENT_CRITERIA = {
    'pastExperience': 'Past Experience or attendance at SAC events',
    'roleKnowledge': 'Good knowledge of tasks involved for the role',
    'leadershipSkills': 'Good leadership skills and leadership experience',
    'creativeOutlook': 'Creative and energetic outlook for the tasks required for this role',
    'timeManagement': 'Seems organized and manages time well',
}


def load_pools(store=None):
    """Pools from the settings document when an admin has saved some, else the defaults."""
    store = store or get_store()
    doc = store.get(SETTINGS_COLLECTION, POOLS_DOC) or {}
    pools = doc.get('pools')
    if pools and len(pools) == len(DEFAULT_POOLS) and all(pools):
        return [list(p) for p in pools]
    return [list(p) for p in DEFAULT_POOLS]


def draw_questions(pools, rng=None):
    rng = rng or random
    return [dict(rng.choice(pool)) for pool in pools]


def normalize_checkboxes(values):
    values = values or {}
    return {key: bool(values.get(key, False)) for key in ASSESSMENT_CRITERIA}
