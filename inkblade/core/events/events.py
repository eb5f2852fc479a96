"""Combat and typing-feel events exchanged over the event bus.

This module defines the closed catalog of events that the feel and combat
engines publish and that progression, narrative and rendering systems
subscribe to.

Event Design Principles:
- Events are immutable dataclasses with minimal payloads
- All events carry the monotonic timestamp of the input that caused them
- Events use stable identifiers (enemy ids, encounter ids) instead of objects
- Events use proper enums instead of magic strings
- Every EventType has exactly one event class (see EVENT_CLASSES)
"""

from dataclasses import dataclass, field
from abc import ABC
from enum import Enum, auto

from ..data import FlowState, EncounterStatus, AttackStyle, StatusEffect


class EventType(Enum):
    """Types of events that systems can subscribe to."""
    # Keystroke and Word Events
    KEYSTROKE_CORRECT = auto()
    KEYSTROKE_ERROR = auto()
    WORD_COMPLETED = auto()

    # Feel Events
    COMBO_EXTENDED = auto()
    COMBO_BROKEN = auto()
    FLOW_STATE_CHANGED = auto()

    # Combat Events
    DAMAGE_DEALT = auto()
    CRITICAL_HIT = auto()
    STATUS_EFFECT_APPLIED = auto()
    ENEMY_DEFEATED = auto()
    PLAYER_DAMAGED = auto()
    PLAYER_DEFEATED = auto()

    # Encounter Lifecycle Events
    ENCOUNTER_STARTED = auto()
    ENCOUNTER_ENDED = auto()


@dataclass(frozen=True)
class RewardsHint:
    """What the progression system should award for a defeated enemy."""
    xp: int = 0
    ink: int = 0


@dataclass(frozen=True)
class GameEvent(ABC):
    """Base class for all game events."""
    timestamp: float
    event_type: EventType = field(init=False)


# Keystroke and Word Events
@dataclass(frozen=True)
class KeystrokeCorrect(GameEvent):
    """Event emitted when a typed character matches the target."""
    char: str
    rhythm_bonus: float = 0.0  # 0.0 off-beat, up to 0.5 on a steady rhythm
    intensity: float = 0.0     # Visual punch in [0, 1]

    def __post_init__(self):
        # Set event_type since dataclass frozen=True prevents normal assignment
        object.__setattr__(self, 'event_type', EventType.KEYSTROKE_CORRECT)


@dataclass(frozen=True)
class KeystrokeError(GameEvent):
    """Event emitted when a typed character does not match the target."""
    expected: str
    actual: str

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.KEYSTROKE_ERROR)


@dataclass(frozen=True)
class WordCompleted(GameEvent):
    """Event emitted when the player finishes typing a word or phrase."""
    word: str
    elapsed_ms: float
    perfect: bool

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.WORD_COMPLETED)


# Feel Events
@dataclass(frozen=True)
class ComboExtended(GameEvent):
    """Event emitted when a qualifying keystroke grows the combo streak."""
    streak: int

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.COMBO_EXTENDED)


@dataclass(frozen=True)
class ComboBroken(GameEvent):
    """Event emitted when a streak resets, by mistake or by decay."""
    previous_streak: int

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.COMBO_BROKEN)


@dataclass(frozen=True)
class FlowStateChanged(GameEvent):
    """Event emitted when the flow tier steps up or down."""
    from_state: FlowState
    to_state: FlowState

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.FLOW_STATE_CHANGED)


# Combat Events
@dataclass(frozen=True)
class DamageDealt(GameEvent):
    """Event emitted for every resolved player attack."""
    amount: int
    target_id: str
    was_perfect_word: bool
    attack_style: AttackStyle = AttackStyle.STANDARD

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.DAMAGE_DEALT)


@dataclass(frozen=True)
class CriticalHit(GameEvent):
    """Event emitted after DamageDealt when the attack was a critical hit."""
    multiplier: float
    target_id: str = ""

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.CRITICAL_HIT)


@dataclass(frozen=True)
class StatusEffectApplied(GameEvent):
    """Event emitted when an attack leaves a status effect on its target."""
    target_id: str
    effect: StatusEffect

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.STATUS_EFFECT_APPLIED)


@dataclass(frozen=True)
class EnemyDefeated(GameEvent):
    """Event emitted when an enemy's health reaches zero."""
    enemy_id: str
    rewards_hint: RewardsHint

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.ENEMY_DEFEATED)


@dataclass(frozen=True)
class PlayerDamaged(GameEvent):
    """Event emitted when the player takes damage."""
    amount: int
    source_id: str

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.PLAYER_DAMAGED)


@dataclass(frozen=True)
class PlayerDefeated(GameEvent):
    """Terminal event emitted when the player's health reaches zero."""

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.PLAYER_DEFEATED)


# Encounter Lifecycle Events
@dataclass(frozen=True)
class EncounterStarted(GameEvent):
    """Event emitted when the combat engine takes ownership of an encounter."""
    encounter_id: str
    enemy_ids: tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.ENCOUNTER_STARTED)


@dataclass(frozen=True)
class EncounterEnded(GameEvent):
    """Event emitted when an encounter reaches a terminal status."""
    encounter_id: str
    status: EncounterStatus

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.ENCOUNTER_ENDED)


EVENT_CLASSES: dict[EventType, type[GameEvent]] = {
    EventType.KEYSTROKE_CORRECT: KeystrokeCorrect,
    EventType.KEYSTROKE_ERROR: KeystrokeError,
    EventType.WORD_COMPLETED: WordCompleted,
    EventType.COMBO_EXTENDED: ComboExtended,
    EventType.COMBO_BROKEN: ComboBroken,
    EventType.FLOW_STATE_CHANGED: FlowStateChanged,
    EventType.DAMAGE_DEALT: DamageDealt,
    EventType.CRITICAL_HIT: CriticalHit,
    EventType.STATUS_EFFECT_APPLIED: StatusEffectApplied,
    EventType.ENEMY_DEFEATED: EnemyDefeated,
    EventType.PLAYER_DAMAGED: PlayerDamaged,
    EventType.PLAYER_DEFEATED: PlayerDefeated,
    EventType.ENCOUNTER_STARTED: EncounterStarted,
    EventType.ENCOUNTER_ENDED: EncounterEnded,
}
