"""Centralized game enums and constants.

This module contains all core game enums that are used across multiple modules,
eliminating duplication and providing a single source of truth.
"""

from enum import Enum, auto


class FlowState(Enum):
    """Tiers of typing rhythm quality, ordered from lowest to highest."""
    BUILDING = 0
    FLOWING = 1
    TRANSCENDENT = 2

    @property
    def tier(self) -> int:
        return self.value

    def step_toward(self, target: "FlowState") -> "FlowState":
        """Move at most one tier toward the target tier."""
        if target.value > self.value:
            return FlowState(self.value + 1)
        if target.value < self.value:
            return FlowState(self.value - 1)
        return self


class EncounterStatus(Enum):
    """Lifecycle of an encounter. Everything except ACTIVE is terminal."""
    ACTIVE = auto()
    VICTORY = auto()
    DEFEAT = auto()
    FLED = auto()

    @property
    def is_terminal(self) -> bool:
        return self is not EncounterStatus.ACTIVE


class EnemyType(Enum):
    """Enemy ranks with different scaling rules."""
    NORMAL = auto()
    ELITE = auto()
    BOSS = auto()


class AttackStyle(Enum):
    """Attack style determined by typing performance on a completed word."""
    DELIBERATE = auto()  # Slow but accurate
    FLURRY = auto()      # Fast and mostly clean
    PRECISION = auto()   # Perfect accuracy at speed
    FRANTIC = auto()     # Fast but sloppy
    STANDARD = auto()


class StatusEffect(Enum):
    """Status effects a resolved attack can leave on its target."""
    STAGGERED = auto()  # Delays the target's next attack


FLOW_STATE_NAMES = {
    FlowState.BUILDING: "Building",
    FlowState.FLOWING: "Flowing",
    FlowState.TRANSCENDENT: "Transcendent",
}

ENCOUNTER_STATUS_NAMES = {
    EncounterStatus.ACTIVE: "Active",
    EncounterStatus.VICTORY: "Victory",
    EncounterStatus.DEFEAT: "Defeat",
    EncounterStatus.FLED: "Fled",
}
