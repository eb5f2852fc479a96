"""Core data structures and definitions.

This package contains fundamental data types and game definitions:
- game_enums.py: Centralized enums for flow tiers, encounter status, enemy ranks
- ring_buffer.py: numpy-backed fixed-capacity ring buffer for rolling windows
"""

from .game_enums import (
    FlowState,
    EncounterStatus,
    EnemyType,
    AttackStyle,
    StatusEffect,
    FLOW_STATE_NAMES,
    ENCOUNTER_STATUS_NAMES,
)
from .ring_buffer import RingBuffer

__all__ = [
    "FlowState",
    "EncounterStatus",
    "EnemyType",
    "AttackStyle",
    "StatusEffect",
    "FLOW_STATE_NAMES",
    "ENCOUNTER_STATUS_NAMES",
    "RingBuffer",
]
