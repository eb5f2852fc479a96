"""Event system for publisher-subscriber communication.

This package contains the complete event-driven architecture:
- event_manager.py: Synchronous, level-ordered event routing
- events.py: The closed catalog of combat and feel events
"""

from .event_manager import EventManager, SubscriptionHandle, DispatchRecord, WILDCARD
from .events import (
    GameEvent,
    EventType,
    RewardsHint,
    KeystrokeCorrect,
    KeystrokeError,
    WordCompleted,
    ComboExtended,
    ComboBroken,
    FlowStateChanged,
    DamageDealt,
    CriticalHit,
    StatusEffectApplied,
    EnemyDefeated,
    PlayerDamaged,
    PlayerDefeated,
    EncounterStarted,
    EncounterEnded,
    EVENT_CLASSES,
)

__all__ = [
    "EventManager",
    "SubscriptionHandle",
    "DispatchRecord",
    "WILDCARD",
    "GameEvent",
    "EventType",
    "RewardsHint",
    "KeystrokeCorrect",
    "KeystrokeError",
    "WordCompleted",
    "ComboExtended",
    "ComboBroken",
    "FlowStateChanged",
    "DamageDealt",
    "CriticalHit",
    "StatusEffectApplied",
    "EnemyDefeated",
    "PlayerDamaged",
    "PlayerDefeated",
    "EncounterStarted",
    "EncounterEnded",
    "EVENT_CLASSES",
]
