"""
Typing feel system for combo, rhythm and flow tracking.

This module turns the raw keystroke stream into the "feel" of a fight:
- a combo streak that grows with every correct keystroke and decays after
  a pause
- a rolling cadence window whose consistency, combined with recent accuracy,
  drives the flow tier (Building, Flowing, Transcendent)
- a critical-hit chance that depends only on the flow tier
- per-keystroke impact (rhythm bonus, intensity, pitch, shake) for renderers;
  it never changes damage

Every change is published on the event bus. Callers that need the current
values right away (the combat engine) read the FeelSnapshot returned by each
operation instead of subscribing.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TYPE_CHECKING

import numpy as np

from ..core.data import FlowState, RingBuffer
from ..core.events import (
    ComboBroken,
    ComboExtended,
    FlowStateChanged,
    KeystrokeCorrect,
    KeystrokeError,
    WordCompleted,
)
from ..core.tuning import FeelTuning

if TYPE_CHECKING:
    from ..core.events import EventManager

logger = logging.getLogger(__name__)

# Per-keystroke feedback. None of this feeds damage; it is what a renderer
# uses to flash, shake and pitch each key.
IMPACT_BASE_STRENGTH = 1.5
IMPACT_REFERENCE_INTERVAL_MS = 200.0
RHYTHM_LOOKBACK = 3
# (deviation from the recent average below which the bonus applies, bonus)
RHYTHM_BANDS = ((30.0, 0.5), (60.0, 0.25), (100.0, 0.1))


@dataclass(frozen=True)
class KeystrokeImpact:
    """Presentation feedback for one keystroke."""
    rhythm_bonus: float = 0.0
    intensity: float = 0.0
    pitch: float = 1.0
    shake: float = 0.0
    strength: float = 0.0


QUIET_IMPACT = KeystrokeImpact()
ERROR_IMPACT = KeystrokeImpact(intensity=0.8, pitch=0.5, shake=0.1)


def rhythm_bonus(interval_ms: Optional[float], recent_intervals: np.ndarray) -> float:
    """Bonus for a keystroke that lands close to the average of the last few intervals."""
    recent = recent_intervals[-RHYTHM_LOOKBACK:]
    recent = recent[recent > 0]
    if interval_ms is None or interval_ms <= 0 or len(recent) < 2:
        return 0.0
    deviation = abs(interval_ms - float(np.mean(recent)))
    for limit, bonus in RHYTHM_BANDS:
        if deviation < limit:
            return bonus
    return 0.0


def keystroke_impact(is_correct: bool, interval_ms: Optional[float],
                     recent_intervals: np.ndarray) -> KeystrokeImpact:
    """Feedback for one typed character.

    Args:
        is_correct: Whether the character matched the target
        interval_ms: Time since the previous keystroke, None for the first one
        recent_intervals: Cadence samples recorded before this keystroke

    Returns:
        KeystrokeImpact; errors always get the same sharp, low flash
    """
    if not is_correct:
        return ERROR_IMPACT
    if interval_ms is None or interval_ms <= 0:
        speed = 1.0
    else:
        # Twice the punch at 100ms between keys, half at 400ms
        speed = float(np.clip(IMPACT_REFERENCE_INTERVAL_MS / interval_ms, 0.5, 2.0))
    bonus = rhythm_bonus(interval_ms, recent_intervals)
    strength = IMPACT_BASE_STRENGTH * speed * (1.0 + bonus)
    return KeystrokeImpact(
        rhythm_bonus=bonus,
        intensity=min(speed * 0.5, 1.0),
        pitch=0.8 + speed * 0.2,
        shake=strength * 0.03,
        strength=strength,
    )


@dataclass(frozen=True)
class FeelSnapshot:
    """Read-only view of the feel state at one instant."""
    combo_streak: int
    flow_state: FlowState
    perfect_word: bool
    cadence_score: float
    accuracy: float
    timestamp: float
    crit_probability: float
    # Feedback of the latest keystroke, and its strength summed over the current word
    last_impact: KeystrokeImpact = QUIET_IMPACT
    word_impact: float = 0.0

    def crit_chance(self) -> float:
        """Critical-hit probability for the flow tier captured in this snapshot."""
        return self.crit_probability


@dataclass
class ComboState:
    """Current streak and the timestamp that keeps it alive."""
    decay_window_ms: float
    streak: int = 0
    last_qualifying_timestamp: Optional[float] = None

    def remaining_ms(self, now: float) -> float:
        """Time left before the streak decays; 0 when there is no streak."""
        if self.streak == 0 or self.last_qualifying_timestamp is None:
            return 0.0
        elapsed_ms = (now - self.last_qualifying_timestamp) * 1000.0
        return max(0.0, self.decay_window_ms - elapsed_ms)

    def is_expired(self, now: float) -> bool:
        if self.streak == 0 or self.last_qualifying_timestamp is None:
            return False
        return (now - self.last_qualifying_timestamp) * 1000.0 > self.decay_window_ms

    def extend(self, timestamp: float) -> int:
        self.streak += 1
        if self.last_qualifying_timestamp is None:
            self.last_qualifying_timestamp = timestamp
        else:
            # Never move the decay clock backwards
            self.last_qualifying_timestamp = max(self.last_qualifying_timestamp, timestamp)
        return self.streak

    def reset(self) -> int:
        """Clear the streak and return what it was."""
        previous = self.streak
        self.streak = 0
        self.last_qualifying_timestamp = None
        return previous


class TypingFeelEngine:
    """Tracks combo, cadence and flow from the keystroke stream."""

    def __init__(
        self,
        event_manager: "EventManager",
        tuning: Optional[FeelTuning] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the feel engine.

        Args:
            event_manager: Event bus used to publish feel events
            tuning: Feel tuning; defaults are used when omitted
            clock: Monotonic clock in seconds, used when a caller omits a timestamp
        """
        self.event_manager = event_manager
        self.tuning = tuning or FeelTuning()
        self.tuning.validate()
        self._clock = clock

        self.combo = ComboState(decay_window_ms=self.tuning.combo_decay_ms)
        self._flow_state = FlowState.BUILDING
        self._perfect_word = False

        # Inter-arrival times (ms) and correctness (1.0/0.0) of recent keystrokes
        self._cadence = RingBuffer(self.tuning.cadence_window)
        self._accuracy = RingBuffer(self.tuning.accuracy_window)
        self._last_keystroke_at: Optional[float] = None
        self._last_impact = QUIET_IMPACT
        self._word_impact = 0.0

    @property
    def flow_state(self) -> FlowState:
        return self._flow_state

    @property
    def perfect_word(self) -> bool:
        return self._perfect_word

    def on_keystroke(
        self,
        is_correct: bool,
        is_backspace: bool,
        timestamp: float,
        char: str = "",
        expected: str = "",
    ) -> FeelSnapshot:
        """Process one keystroke and return the updated feel.

        Args:
            is_correct: Whether the typed character matched the target
            is_backspace: Whether the keystroke was a corrective backspace
            timestamp: Monotonic time of the keystroke in seconds
            char: The character typed (for KeystrokeCorrect/KeystrokeError)
            expected: The character the target called for

        Returns:
            Snapshot of the feel state after this keystroke
        """
        self._check_decay(timestamp)
        recent_intervals = self._cadence.values()
        interval_ms = self._record_cadence(timestamp)

        if is_backspace:
            # Corrections neither extend nor break the streak
            self._last_impact = QUIET_IMPACT
        else:
            self._last_impact = keystroke_impact(is_correct, interval_ms, recent_intervals)
            self._word_impact += self._last_impact.strength

        if is_correct and not is_backspace:
            self.event_manager.publish(
                KeystrokeCorrect(
                    timestamp=timestamp,
                    char=char,
                    rhythm_bonus=self._last_impact.rhythm_bonus,
                    intensity=self._last_impact.intensity,
                ),
                source="TypingFeelEngine"
            )
            streak = self.combo.extend(timestamp)
            self.event_manager.publish(
                ComboExtended(timestamp=timestamp, streak=streak),
                source="TypingFeelEngine"
            )
        elif not is_backspace:
            self.event_manager.publish(
                KeystrokeError(timestamp=timestamp, expected=expected, actual=char),
                source="TypingFeelEngine"
            )
            self._break_combo(timestamp)

        if not is_backspace:
            self._accuracy.append(1.0 if is_correct else 0.0)

        self._evaluate_flow(timestamp)
        return self._build_snapshot(timestamp)

    def begin_word(self) -> None:
        """Clear the perfect-word flag and the word impact before a new word is attempted."""
        self._perfect_word = False
        self._word_impact = 0.0

    def on_word_completed(
        self,
        had_backspaces: bool,
        elapsed_ms: float,
        word: str = "",
        timestamp: Optional[float] = None,
    ) -> FeelSnapshot:
        """Record a finished word; a backspace-free word sets the perfect-word flag."""
        now = self._now(timestamp)
        self._perfect_word = not had_backspaces
        self.event_manager.publish(
            WordCompleted(
                timestamp=now,
                word=word,
                elapsed_ms=elapsed_ms,
                perfect=self._perfect_word,
            ),
            source="TypingFeelEngine"
        )
        return self.snapshot(now)

    def current_combo(self, now: Optional[float] = None) -> int:
        """Current streak, decayed first if the window has run out."""
        self._check_decay(self._now(now))
        return self.combo.streak

    def crit_chance(self) -> float:
        """Critical-hit probability for the current flow tier."""
        return self.tuning.crit_chance[self._flow_state]

    def cadence_score(self) -> float:
        """Consistency of recent inter-arrival times in (0, 1]; 1.0 is metronomic."""
        if len(self._cadence) == 0:
            return 0.0
        mean = self._cadence.mean()
        if mean <= 0.0:
            return 1.0
        variation = self._cadence.std() / mean
        return 1.0 / (1.0 + variation)

    def accuracy(self) -> float:
        """Share of correct keystrokes in the accuracy window (1.0 when empty)."""
        if len(self._accuracy) == 0:
            return 1.0
        return self._accuracy.mean()

    def snapshot(self, now: Optional[float] = None) -> FeelSnapshot:
        """Current feel state; applies combo decay first."""
        now = self._now(now)
        self._check_decay(now)
        return self._build_snapshot(now)

    def reset(self) -> None:
        """Clear all feel state without publishing anything."""
        self.combo.reset()
        self._flow_state = FlowState.BUILDING
        self._perfect_word = False
        self._cadence.clear()
        self._accuracy.clear()
        self._last_keystroke_at = None
        self._last_impact = QUIET_IMPACT
        self._word_impact = 0.0

    def _now(self, timestamp: Optional[float]) -> float:
        return self._clock() if timestamp is None else timestamp

    def _check_decay(self, now: float) -> None:
        if self.combo.is_expired(now):
            logger.debug("Combo of %d decayed", self.combo.streak)
            self._break_combo(now)

    def _break_combo(self, timestamp: float) -> None:
        if self.combo.streak == 0:
            return
        previous = self.combo.reset()
        self.event_manager.publish(
            ComboBroken(timestamp=timestamp, previous_streak=previous),
            source="TypingFeelEngine"
        )

    def _record_cadence(self, timestamp: float) -> Optional[float]:
        """Record the interval since the previous keystroke and return it."""
        if self._last_keystroke_at is None:
            self._last_keystroke_at = timestamp
            return None
        interval_ms = (timestamp - self._last_keystroke_at) * 1000.0
        if interval_ms < 0:
            # Clock jitter: drop the sample, keep the later reference point
            logger.debug("Ignoring keystroke timestamp %.3f before %.3f",
                         timestamp, self._last_keystroke_at)
            return None
        self._cadence.append(interval_ms)
        self._last_keystroke_at = timestamp
        return interval_ms

    def _target_tier(self) -> FlowState:
        if len(self._cadence) < self.tuning.min_cadence_samples:
            return FlowState.BUILDING

        weight = self.tuning.cadence_weight
        score = weight * self.cadence_score() + (1.0 - weight) * self.accuracy()

        if score >= self.tuning.transcendent_threshold:
            return FlowState.TRANSCENDENT
        if score >= self.tuning.flowing_threshold:
            return FlowState.FLOWING
        return FlowState.BUILDING

    def _evaluate_flow(self, timestamp: float) -> None:
        previous = self._flow_state
        new_state = previous.step_toward(self._target_tier())
        if new_state == previous:
            return
        self._flow_state = new_state
        self.event_manager.publish(
            FlowStateChanged(timestamp=timestamp, from_state=previous, to_state=new_state),
            source="TypingFeelEngine"
        )

    def _build_snapshot(self, timestamp: float) -> FeelSnapshot:
        return FeelSnapshot(
            combo_streak=self.combo.streak,
            flow_state=self._flow_state,
            perfect_word=self._perfect_word,
            cadence_score=self.cadence_score(),
            accuracy=self.accuracy(),
            timestamp=timestamp,
            crit_probability=self.crit_chance(),
            last_impact=self._last_impact,
            word_impact=self._word_impact,
        )
