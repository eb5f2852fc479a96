"""
Combat log for the in-game message feed.

This module listens to every event on the bus and keeps a bounded,
categorised list of human-readable lines that a renderer can show as the
battle log. Keystroke-level chatter is kept at DEBUG level so it stays out
of the normal feed.
"""
from collections import deque
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional, TYPE_CHECKING

from ..core.data import FLOW_STATE_NAMES, ENCOUNTER_STATUS_NAMES
from ..core.events import EventType, GameEvent
from .attack_style import format_attack_message

if TYPE_CHECKING:
    from ..core.events import EventManager, SubscriptionHandle


class LogCategory(Enum):
    """Categories for log messages."""
    INPUT = auto()      # Individual keystrokes
    COMBO = auto()      # Combo streak changes
    FLOW = auto()       # Flow tier changes
    BATTLE = auto()     # Damage, crits, status effects, defeats
    ENCOUNTER = auto()  # Encounter start and end


class LogLevel(Enum):
    """Log levels for filtering."""
    DEBUG = 0
    INFO = 1


@dataclass
class LogEntry:
    """A single log message with metadata."""
    text: str
    category: LogCategory
    level: LogLevel
    timestamp: float

    def format(self, include_category: bool = True) -> str:
        """Format the message for display."""
        if not include_category:
            return self.text
        category_tags = {
            LogCategory.INPUT: "INP",
            LogCategory.COMBO: "CMB",
            LogCategory.FLOW: "FLW",
            LogCategory.BATTLE: "BTL",
            LogCategory.ENCOUNTER: "ENC",
        }
        return f"[{category_tags[self.category]}] {self.text}"


class CombatLog:
    """Turns bus events into log lines."""

    def __init__(
        self,
        event_manager: "EventManager",
        max_messages: int = 200,
        log_level: LogLevel = LogLevel.INFO
    ):
        self.event_manager = event_manager
        self.messages: deque[LogEntry] = deque(maxlen=max_messages)
        self.log_level = log_level

        self._formatters: dict[EventType, tuple[LogCategory, LogLevel, Callable[[GameEvent], str]]] = {
            EventType.KEYSTROKE_CORRECT: (LogCategory.INPUT, LogLevel.DEBUG,
                                          lambda e: f"'{e.char}'"),
            EventType.KEYSTROKE_ERROR: (LogCategory.INPUT, LogLevel.DEBUG,
                                        lambda e: f"'{e.actual}' (expected '{e.expected}')"),
            EventType.WORD_COMPLETED: (LogCategory.INPUT, LogLevel.DEBUG,
                                       lambda e: f"'{e.word}' in {e.elapsed_ms:.0f}ms"
                                                 + (" (perfect)" if e.perfect else "")),
            EventType.COMBO_EXTENDED: (LogCategory.COMBO, LogLevel.DEBUG,
                                       lambda e: f"Combo x{e.streak}"),
            EventType.COMBO_BROKEN: (LogCategory.COMBO, LogLevel.INFO,
                                     lambda e: f"Combo broken at x{e.previous_streak}"),
            EventType.FLOW_STATE_CHANGED: (LogCategory.FLOW, LogLevel.INFO, self._format_flow),
            EventType.DAMAGE_DEALT: (LogCategory.BATTLE, LogLevel.INFO,
                                     lambda e: format_attack_message(e.attack_style, e.amount,
                                                                     e.was_perfect_word)),
            EventType.CRITICAL_HIT: (LogCategory.BATTLE, LogLevel.INFO,
                                     lambda e: f"CRITICAL! x{e.multiplier:g}"),
            EventType.STATUS_EFFECT_APPLIED: (LogCategory.BATTLE, LogLevel.INFO,
                                              lambda e: f"{e.target_id} is {e.effect.name.lower()}"),
            EventType.ENEMY_DEFEATED: (LogCategory.BATTLE, LogLevel.INFO,
                                       lambda e: f"{e.enemy_id} defeated "
                                                 f"(+{e.rewards_hint.xp} xp, +{e.rewards_hint.ink} ink)"),
            EventType.PLAYER_DAMAGED: (LogCategory.BATTLE, LogLevel.INFO,
                                       lambda e: f"{e.source_id} hits you for {e.amount}"),
            EventType.PLAYER_DEFEATED: (LogCategory.BATTLE, LogLevel.INFO,
                                        lambda e: "You have fallen."),
            EventType.ENCOUNTER_STARTED: (LogCategory.ENCOUNTER, LogLevel.INFO,
                                          lambda e: f"Encounter begins: {', '.join(e.enemy_ids)}"),
            EventType.ENCOUNTER_ENDED: (LogCategory.ENCOUNTER, LogLevel.INFO,
                                        lambda e: f"Encounter over: {ENCOUNTER_STATUS_NAMES[e.status]}"),
        }

        self._handle: Optional["SubscriptionHandle"] = self.event_manager.subscribe_all(
            self._handle_event,
            subscriber_name="CombatLog.all_events"
        )

    @staticmethod
    def _format_flow(event: GameEvent) -> str:
        direction = "rises" if event.to_state.value > event.from_state.value else "falls"
        return f"Flow {direction}: {FLOW_STATE_NAMES[event.to_state]}"

    def _handle_event(self, event: GameEvent) -> None:
        category, level, formatter = self._formatters[event.event_type]
        self.messages.append(
            LogEntry(text=formatter(event), category=category, level=level, timestamp=event.timestamp)
        )

    def get_messages(
        self,
        count: Optional[int] = None,
        categories: Optional[set[LogCategory]] = None
    ) -> list[LogEntry]:
        """Get recent messages at or above the log level, optionally filtered by category."""
        filtered = [
            msg for msg in self.messages
            if msg.level.value >= self.log_level.value
            and (categories is None or msg.category in categories)
        ]
        if count is not None and count < len(filtered):
            return filtered[-count:]
        return filtered

    def formatted(self, count: Optional[int] = None) -> list[str]:
        return [msg.format() for msg in self.get_messages(count)]

    def clear(self) -> None:
        self.messages.clear()

    def detach(self) -> None:
        """Stop listening to the bus."""
        if self._handle is not None:
            self.event_manager.unsubscribe(self._handle)
            self._handle = None
