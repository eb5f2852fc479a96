"""Game systems built on the core event bus.

- typing_attempt.py: Live comparison of typed input against a target word
- typing_feel.py: Combo, cadence and flow tracking (TypingFeelEngine)
- combat_engine.py: Damage resolution and encounter ownership (CombatEngine)
- encounter.py: Encounter state machine and player stats
- attack_style.py: Attack style classification and attack messages
- combat_log.py: Event-driven battle log
- entities/: Enemies and enemy templates
"""

from .typing_attempt import TypingAttempt, KeystrokeJudgement
from .typing_feel import TypingFeelEngine, FeelSnapshot, ComboState
from .combat_engine import CombatEngine, CombatOutcome, EnemyStrike
from .encounter import Encounter, PlayerState

__all__ = [
    "TypingAttempt",
    "KeystrokeJudgement",
    "TypingFeelEngine",
    "FeelSnapshot",
    "ComboState",
    "CombatEngine",
    "CombatOutcome",
    "EnemyStrike",
    "Encounter",
    "PlayerState",
]
