"""
Typing attempt tracking.

A TypingAttempt is the live comparison between a target word or phrase and
what the player has typed so far. The combat engine only accepts attempts
whose completion flag is set, which happens the moment the input buffer
matches the target exactly.
"""
from dataclasses import dataclass
from typing import Optional

from ..core.exceptions import InvalidStateError


@dataclass(frozen=True)
class KeystrokeJudgement:
    """How a single keystroke compared against the target."""
    is_correct: bool
    is_backspace: bool
    expected: str  # "" past the end of the target or for backspace
    actual: str    # "" for backspace
    timestamp: float
    completed: bool


class TypingAttempt:
    """In-progress comparison of the input buffer against a target string."""

    def __init__(self, target: str, started_at: float):
        if not target:
            raise ValueError("TypingAttempt target must not be empty")
        self.target = target
        self.started_at = started_at
        self.last_timestamp = started_at

        self.buffer: list[str] = []
        self.matches: list[bool] = []  # Per buffered character

        self.error_count = 0
        self.backspace_count = 0
        self.keystroke_count = 0
        self.completed = False

    @property
    def typed(self) -> str:
        return "".join(self.buffer)

    @property
    def had_backspaces(self) -> bool:
        return self.backspace_count > 0

    @property
    def elapsed_ms(self) -> float:
        """Time from attempt start to the latest keystroke."""
        return max(0.0, (self.last_timestamp - self.started_at) * 1000.0)

    @property
    def correct_keystrokes(self) -> int:
        return self.keystroke_count - self.error_count

    @property
    def accuracy(self) -> float:
        """Share of typed characters (backspaces excluded) that were correct."""
        if self.keystroke_count == 0:
            return 1.0
        return self.correct_keystrokes / self.keystroke_count

    @property
    def wpm(self) -> float:
        """Words per minute over the attempt, using five characters per word."""
        minutes = self.elapsed_ms / 60000.0
        if minutes <= 0:
            return 0.0
        return (self.keystroke_count / 5.0) / minutes

    def expected_char(self) -> str:
        """The character the player should type next, or "" past the end."""
        position = len(self.buffer)
        if position < len(self.target):
            return self.target[position]
        return ""

    def type_char(self, char: str, timestamp: float) -> KeystrokeJudgement:
        """Append a character to the buffer and judge it against the target."""
        self._ensure_open()
        expected = self.expected_char()
        # A character only counts as correct if everything before it is correct
        is_correct = char == expected and all(self.matches)

        self.buffer.append(char)
        self.matches.append(is_correct)
        self.keystroke_count += 1
        if not is_correct:
            self.error_count += 1
        self._touch(timestamp)

        self.completed = self.typed == self.target
        return KeystrokeJudgement(
            is_correct=is_correct,
            is_backspace=False,
            expected=expected,
            actual=char,
            timestamp=timestamp,
            completed=self.completed,
        )

    def backspace(self, timestamp: float) -> KeystrokeJudgement:
        """Remove the last buffered character."""
        self._ensure_open()
        self.backspace_count += 1
        if self.buffer:
            self.buffer.pop()
            self.matches.pop()
        self._touch(timestamp)
        return KeystrokeJudgement(
            is_correct=True,
            is_backspace=True,
            expected="",
            actual="",
            timestamp=timestamp,
            completed=False,
        )

    def _touch(self, timestamp: float) -> None:
        # Clock jitter must never shrink elapsed time
        self.last_timestamp = max(self.last_timestamp, timestamp)

    def _ensure_open(self) -> None:
        if self.completed:
            raise InvalidStateError(f"Attempt at '{self.target}' is already complete")

    def __repr__(self) -> str:
        return (
            f"TypingAttempt(target={self.target!r}, typed={self.typed!r}, "
            f"errors={self.error_count}, backspaces={self.backspace_count}, "
            f"completed={self.completed})"
        )


def attempt_from_keys(
    target: str,
    keys: list[tuple[Optional[str], float]],
    started_at: Optional[float] = None
) -> TypingAttempt:
    """Replay (char, timestamp) pairs into a new attempt; None means backspace.

    Without `started_at` the first keystroke starts the clock, so that
    keystroke itself takes no time.
    """
    if not keys:
        raise ValueError("attempt_from_keys needs at least one keystroke")
    if started_at is not None and started_at > keys[0][1]:
        raise ValueError("started_at must not be after the first keystroke")
    attempt = TypingAttempt(target, started_at=keys[0][1] if started_at is None else started_at)
    for char, timestamp in keys:
        if char is None:
            attempt.backspace(timestamp)
        else:
            attempt.type_char(char, timestamp)
    return attempt
