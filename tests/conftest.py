"""
Basic test fixtures for the inkblade test suite.

Provides simple fixtures for testing the event bus, the feel engine and the
combat engine with deterministic clocks and random generators.
"""

import sys
import os

import numpy as np
import pytest

# Add the project root to the Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from inkblade.core.data import FlowState
from inkblade.core.events import EventManager, EventType
from inkblade.core.tuning import CombatTuning, FeelTuning
from inkblade.game.combat_engine import CombatEngine
from inkblade.game.encounter import PlayerState
from inkblade.game.entities.enemy import Enemy
from inkblade.game.typing_feel import TypingFeelEngine


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms / 1000.0
        return self.now


class EventRecorder:
    """Wildcard subscriber that remembers everything it receives."""

    def __init__(self, event_manager: EventManager):
        self.events = []
        event_manager.subscribe_all(self.events.append, subscriber_name="EventRecorder")

    def types(self) -> list[EventType]:
        return [event.event_type for event in self.events]

    def of_type(self, event_type: EventType) -> list:
        return [event for event in self.events if event.event_type == event_type]

    def clear(self) -> None:
        self.events.clear()


def make_enemy(enemy_id: str = "goblin-1", hp: int = 30, **kwargs) -> Enemy:
    """Build an enemy with sensible defaults for tests."""
    defaults = dict(name="Goblin Lurker", attack_power=5, defense=0,
                    xp_reward=12, ink_reward=8, attack_interval_ms=3000.0)
    defaults.update(kwargs)
    return Enemy(enemy_id=enemy_id, max_hp=hp, **defaults)


def crit_curve(chance: float) -> dict[FlowState, float]:
    return {state: chance for state in FlowState}


@pytest.fixture
def event_manager():
    """Create an event manager for testing."""
    return EventManager(enable_debug_logging=False)


@pytest.fixture
def recorder(event_manager):
    """Record every event published on the test bus."""
    return EventRecorder(event_manager)


@pytest.fixture
def clock():
    return FakeClock(100.0)


@pytest.fixture
def feel_tuning():
    """Default feel tuning with crits disabled for deterministic damage."""
    return FeelTuning(crit_chance=crit_curve(0.0))


@pytest.fixture
def feel_engine(event_manager, feel_tuning, clock):
    return TypingFeelEngine(event_manager, feel_tuning, clock=clock)


@pytest.fixture
def combat_tuning():
    return CombatTuning()


@pytest.fixture
def combat_engine(event_manager, feel_engine, combat_tuning, clock):
    return CombatEngine(
        event_manager, feel_engine, combat_tuning,
        rng=np.random.default_rng(1234), clock=clock
    )


@pytest.fixture
def player():
    return PlayerState(max_hp=50, attack_power=4, max_mana=10)


@pytest.fixture
def goblin():
    return make_enemy()
