"""
Keystroke pipeline orchestration.

This module wires the input layer to the two engines: every keystroke is
judged against the current attempt, fed to the feel engine, and when the
word is finished the attempt is handed to the combat engine. It holds no
combat or feel state of its own beyond the attempt in progress.
"""
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from ..core.exceptions import InvalidStateError
from .typing_attempt import TypingAttempt

if TYPE_CHECKING:
    from .combat_engine import CombatEngine, CombatOutcome
    from .encounter import EnemyRef
    from .typing_feel import FeelSnapshot, TypingFeelEngine


BACKSPACE = "\b"


@dataclass(frozen=True)
class KeystrokeResult:
    """What one keystroke produced."""
    feel: "FeelSnapshot"
    is_correct: bool
    completed: bool
    outcome: Optional["CombatOutcome"] = None


class KeystrokePipeline:
    """Routes keystrokes through the attempt, the feel engine and the combat engine."""

    def __init__(self, feel_engine: "TypingFeelEngine", combat_engine: "CombatEngine"):
        self.feel_engine = feel_engine
        self.combat_engine = combat_engine
        self.attempt: Optional[TypingAttempt] = None
        self.target: Optional["EnemyRef"] = None

    def begin_word(self, word: str, timestamp: float, target: Optional["EnemyRef"] = None) -> TypingAttempt:
        """Start a new attempt at `word`, optionally aimed at a specific enemy.

        Raises:
            InvalidStateError: If there is no active encounter to attack
        """
        self.combat_engine.require_active()
        self.attempt = TypingAttempt(word, started_at=timestamp)
        self.target = target
        self.feel_engine.begin_word()
        return self.attempt

    def press(self, key: str, timestamp: float) -> KeystrokeResult:
        """Feed one key (a character, or BACKSPACE) through the pipeline.

        When the key completes the word, the feel engine records the word and
        the combat engine resolves it before this returns. The attempt is
        finished either way, even if resolution raises because the encounter
        ended mid-word.
        """
        if self.attempt is None:
            raise InvalidStateError("press() called before begin_word()")

        attempt = self.attempt
        if key == BACKSPACE:
            judgement = attempt.backspace(timestamp)
        else:
            judgement = attempt.type_char(key, timestamp)

        feel = self.feel_engine.on_keystroke(
            is_correct=judgement.is_correct,
            is_backspace=judgement.is_backspace,
            timestamp=timestamp,
            char=judgement.actual,
            expected=judgement.expected,
        )

        if not judgement.completed:
            return KeystrokeResult(feel=feel, is_correct=judgement.is_correct, completed=False)

        try:
            feel = self.feel_engine.on_word_completed(
                had_backspaces=attempt.had_backspaces,
                elapsed_ms=attempt.elapsed_ms,
                word=attempt.target,
                timestamp=timestamp,
            )
            outcome = self.combat_engine.resolve_attempt(attempt, feel, self.target)
        finally:
            self.attempt = None
            self.target = None
        return KeystrokeResult(feel=feel, is_correct=judgement.is_correct, completed=True, outcome=outcome)

    def type_word(self, keys: str, start: float, interval_ms: float,
                  target: Optional["EnemyRef"] = None, word: Optional[str] = None,
                  started_at: Optional[float] = None) -> list[KeystrokeResult]:
        """Type `keys` at an even cadence; convenient for scripted runs.

        `word` is the target (defaults to `keys`); BACKSPACE characters in
        `keys` are corrections. The first key lands at `start`; the attempt
        itself begins at `started_at` when given (the moment the word was
        shown), otherwise at the first key.
        """
        self.begin_word(word or keys, start if started_at is None else started_at, target)
        results = []
        for index, key in enumerate(keys):
            results.append(self.press(key, start + index * interval_ms / 1000.0))
        return results
