"""
Combat resolution system for typed attacks and incoming damage.

This module turns a completed typing attempt plus the current feel snapshot
into damage against an enemy, and handles the symmetric enemy-to-player path.
It owns the active encounter exclusively; other systems learn what happened
only through the events published here.

Damage for one attempt:

    base     = max(1, attack_power + damage_per_char * len(word) - defense // 2)
    final    = max(1, round(base * speed * accuracy * combo * crit))

Events for one attempt are always published in the same order:
DamageDealt, CriticalHit, StatusEffectApplied, EnemyDefeated, EncounterEnded.
State is fully updated before the first of them goes out.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, TYPE_CHECKING

import numpy as np

from ..core.data import AttackStyle, EncounterStatus, StatusEffect
from ..core.events import (
    CriticalHit,
    DamageDealt,
    EncounterEnded,
    EncounterStarted,
    EnemyDefeated,
    PlayerDamaged,
    PlayerDefeated,
    StatusEffectApplied,
)
from ..core.exceptions import InvalidStateError
from ..core.tuning import CombatTuning
from .attack_style import classify_attack
from .encounter import Encounter, EnemyRef, PlayerState

if TYPE_CHECKING:
    from ..core.events import EventManager
    from .entities.enemy import Enemy
    from .typing_attempt import TypingAttempt
    from .typing_feel import FeelSnapshot, TypingFeelEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CombatOutcome:
    """Result of resolving one completed attempt."""
    target_id: str
    base_damage: int
    speed_multiplier: float
    accuracy_multiplier: float
    combo_multiplier: float
    critical_hit: bool
    crit_multiplier: float  # 1.0 when the attack did not crit
    final_damage: int
    was_perfect_word: bool
    target_defeated: bool
    attack_style: AttackStyle = AttackStyle.STANDARD
    wpm: float = 0.0
    accuracy: float = 1.0
    status_effects: tuple[StatusEffect, ...] = ()

    @property
    def total_multiplier(self) -> float:
        return (
            self.speed_multiplier
            * self.accuracy_multiplier
            * self.combo_multiplier
            * self.crit_multiplier
        )


@dataclass(frozen=True)
class EnemyStrike:
    """An enemy attack triggered by its behaviour timer."""
    enemy_id: str
    damage: int
    message: str


class CombatEngine:
    """Resolves typed attacks and enemy attacks for the active encounter."""

    def __init__(
        self,
        event_manager: "EventManager",
        feel_engine: "TypingFeelEngine",
        tuning: Optional[CombatTuning] = None,
        rng: Optional[np.random.Generator] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the combat engine.

        Args:
            event_manager: Event bus used to publish combat events
            feel_engine: Source of feel snapshots when the caller passes none
            tuning: Combat tuning; defaults are used when omitted
            rng: Random generator for critical-hit rolls (seed it for replays)
            clock: Monotonic clock in seconds, used when a caller omits a timestamp
        """
        self.event_manager = event_manager
        self.feel_engine = feel_engine
        self.tuning = tuning or CombatTuning()
        self.tuning.validate()
        self.rng = rng if rng is not None else np.random.default_rng()
        self._clock = clock
        self._encounter: Optional[Encounter] = None

    @property
    def encounter(self) -> Optional[Encounter]:
        """The current (or most recently finished) encounter."""
        return self._encounter

    def require_active(self) -> Encounter:
        """Return the current encounter, raising InvalidStateError unless it is active."""
        if self._encounter is None:
            raise InvalidStateError("No encounter has been started")
        self._encounter.ensure_active()
        return self._encounter

    def start_encounter(
        self,
        player: PlayerState,
        enemies: Iterable["Enemy"],
        encounter_id: Optional[str] = None,
        timestamp: Optional[float] = None,
    ) -> Encounter:
        """Take ownership of a new encounter.

        Raises:
            InvalidStateError: If another encounter is still active
        """
        if self._encounter is not None and self._encounter.is_active:
            raise InvalidStateError(
                f"Encounter {self._encounter.encounter_id} is still active"
            )
        encounter = Encounter(player, enemies, encounter_id)
        self._encounter = encounter
        logger.info("Encounter %s started against %s", encounter.encounter_id,
                    ", ".join(e.name for e in encounter.enemies.values()))

        self.event_manager.publish(
            EncounterStarted(
                timestamp=self._now(timestamp),
                encounter_id=encounter.encounter_id,
                enemy_ids=tuple(encounter.enemies),
            ),
            source="CombatEngine"
        )
        return encounter

    def resolve_attempt(
        self,
        attempt: "TypingAttempt",
        feel: Optional["FeelSnapshot"] = None,
        target: Optional[EnemyRef] = None,
    ) -> CombatOutcome:
        """
        Resolve a completed typing attempt against an enemy.

        Args:
            attempt: The attempt; its completion flag must be set
            feel: Feel snapshot to use; taken from the feel engine when omitted
            target: Enemy id or Enemy; the first living enemy when omitted

        Returns:
            CombatOutcome with every multiplier and the final damage

        Raises:
            InvalidStateError: No active encounter, attempt not complete, or
                target already defeated
        """
        encounter = self.require_active()
        if not attempt.completed:
            raise InvalidStateError(f"Attempt at '{attempt.target}' is not complete")
        enemy = self._select_target(encounter, target)

        timestamp = attempt.last_timestamp
        if feel is None:
            feel = self.feel_engine.snapshot(timestamp)

        word_length = len(attempt.target)
        base_damage = self.base_damage(encounter.player, enemy, word_length)
        was_perfect = feel.perfect_word and not attempt.had_backspaces

        speed = self.speed_multiplier(word_length, attempt.elapsed_ms)
        accuracy = self.accuracy_multiplier(attempt.error_count, was_perfect)
        combo = self.combo_multiplier(feel.combo_streak)
        critical = self.roll_critical(feel.crit_chance())
        crit_multiplier = self.tuning.crit_multiplier if critical else 1.0

        raw_damage = base_damage * speed * accuracy * combo * crit_multiplier
        final_damage = max(1, int(round(raw_damage)))

        enemy.take_damage(final_damage)
        defeated = enemy.is_defeated

        effects: list[StatusEffect] = []
        if critical and not defeated:
            enemy.apply_status(StatusEffect.STAGGERED, self.tuning.stagger_ms)
            effects.append(StatusEffect.STAGGERED)

        victory = defeated and encounter.all_enemies_defeated()
        if victory:
            encounter.finish(EncounterStatus.VICTORY)

        outcome = CombatOutcome(
            target_id=enemy.enemy_id,
            base_damage=base_damage,
            speed_multiplier=speed,
            accuracy_multiplier=accuracy,
            combo_multiplier=combo,
            critical_hit=critical,
            crit_multiplier=crit_multiplier,
            final_damage=final_damage,
            was_perfect_word=was_perfect,
            target_defeated=defeated,
            attack_style=classify_attack(attempt.wpm, attempt.accuracy),
            wpm=attempt.wpm,
            accuracy=attempt.accuracy,
            status_effects=tuple(effects),
        )
        logger.debug(
            "%s -> %s: %d damage (base %d, x%.2f speed, x%.2f accuracy, x%.2f combo, crit=%s)",
            attempt.target, enemy.enemy_id, final_damage, base_damage,
            speed, accuracy, combo, critical
        )

        self._publish_outcome(outcome, enemy, encounter, timestamp, victory)
        return outcome

    def base_damage(self, player: PlayerState, enemy: "Enemy", word_length: int) -> int:
        """Damage before multipliers; defense removes half its value, minimum 1."""
        raw = player.attack_power + self.tuning.damage_per_char * word_length
        return max(1, int(round(raw)) - enemy.defense // 2)

    def speed_multiplier(self, word_length: int, elapsed_ms: float) -> float:
        """Bonus for beating the expected time; never below 1.0."""
        expected_ms = self.tuning.baseline_ms + self.tuning.baseline_ms_per_char * word_length
        if elapsed_ms <= 0:
            return self.tuning.max_speed_multiplier
        return float(np.clip(expected_ms / elapsed_ms, 1.0, self.tuning.max_speed_multiplier))

    def accuracy_multiplier(self, error_count: int, perfect_word: bool) -> float:
        """Clean words earn a bonus that compounds with the perfect-word flag."""
        if error_count == 0:
            multiplier = self.tuning.clean_accuracy_multiplier
            if perfect_word:
                multiplier *= self.tuning.perfect_word_multiplier
            return multiplier
        penalized = 1.0 - self.tuning.error_penalty * error_count
        return max(self.tuning.min_accuracy_multiplier, penalized)

    def combo_multiplier(self, combo_streak: int) -> float:
        """Grows with the streak, never above the configured cap."""
        multiplier = 1.0 + self.tuning.combo_step * max(0, combo_streak)
        return min(self.tuning.combo_cap, multiplier)

    def roll_critical(self, chance: float) -> bool:
        if chance <= 0.0:
            return False
        return bool(self.rng.random() < chance)

    def apply_incoming_damage(
        self,
        amount: int,
        source_id: str,
        timestamp: Optional[float] = None,
    ) -> int:
        """
        Apply enemy-to-player damage.

        Publishes PlayerDamaged; if the player's health reaches zero, also
        publishes PlayerDefeated and ends the encounter in DEFEAT.

        Returns:
            The player's remaining health

        Raises:
            InvalidStateError: If there is no active encounter
        """
        encounter = self.require_active()
        if amount < 0:
            raise ValueError("Incoming damage must not be negative")

        remaining = encounter.player.take_damage(amount)
        defeated = encounter.player.is_defeated
        if defeated:
            encounter.finish(EncounterStatus.DEFEAT)

        timestamp = self._now(timestamp)
        self.event_manager.publish(
            PlayerDamaged(timestamp=timestamp, amount=amount, source_id=source_id),
            source="CombatEngine"
        )
        if defeated:
            logger.info("Player defeated by %s", source_id)
            self.event_manager.publish(PlayerDefeated(timestamp=timestamp), source="CombatEngine")
            self._publish_ended(encounter, timestamp)
        return remaining

    def flee(self, timestamp: Optional[float] = None) -> None:
        """End the active encounter with the player fleeing."""
        encounter = self.require_active()
        encounter.finish(EncounterStatus.FLED)
        logger.info("Player fled encounter %s", encounter.encounter_id)
        self._publish_ended(encounter, self._now(timestamp))

    def advance_time(self, elapsed_ms: float, timestamp: Optional[float] = None) -> list[EnemyStrike]:
        """
        Run enemy behaviour timers forward.

        Each enemy whose timer runs out strikes the player and restarts its
        timer. Stops as soon as the encounter ends.

        Returns:
            The strikes that happened, in order
        """
        encounter = self.require_active()
        if elapsed_ms < 0:
            raise ValueError("elapsed_ms must not be negative")

        timestamp = self._now(timestamp)
        strikes: list[EnemyStrike] = []
        for enemy in encounter.living_enemies():
            enemy.attack_timer_ms -= elapsed_ms
            while enemy.attack_timer_ms <= 0 and encounter.is_active:
                enemy.attack_timer_ms += enemy.attack_interval_ms
                enemy.status_effects.discard(StatusEffect.STAGGERED)
                strikes.append(EnemyStrike(
                    enemy_id=enemy.enemy_id,
                    damage=enemy.attack_power,
                    message=f"{enemy.name} {enemy.get_attack_message(self.rng)}",
                ))
                self.apply_incoming_damage(enemy.attack_power, enemy.enemy_id, timestamp)
            if not encounter.is_active:
                break
        return strikes

    def _now(self, timestamp: Optional[float]) -> float:
        return self._clock() if timestamp is None else timestamp

    def _select_target(self, encounter: Encounter, target: Optional[EnemyRef]) -> "Enemy":
        if target is None:
            living = encounter.living_enemies()
            # An active encounter always has a living enemy
            return living[0]
        enemy = encounter.get_enemy(target)
        if enemy.is_defeated:
            raise InvalidStateError(f"Enemy {enemy.enemy_id} has already been defeated")
        return enemy

    def _publish_outcome(
        self,
        outcome: CombatOutcome,
        enemy: "Enemy",
        encounter: Encounter,
        timestamp: float,
        victory: bool,
    ) -> None:
        self.event_manager.publish(
            DamageDealt(
                timestamp=timestamp,
                amount=outcome.final_damage,
                target_id=outcome.target_id,
                was_perfect_word=outcome.was_perfect_word,
                attack_style=outcome.attack_style,
            ),
            source="CombatEngine"
        )
        if outcome.critical_hit:
            self.event_manager.publish(
                CriticalHit(
                    timestamp=timestamp,
                    multiplier=outcome.crit_multiplier,
                    target_id=outcome.target_id,
                ),
                source="CombatEngine"
            )
        for effect in outcome.status_effects:
            self.event_manager.publish(
                StatusEffectApplied(timestamp=timestamp, target_id=outcome.target_id, effect=effect),
                source="CombatEngine"
            )
        if outcome.target_defeated:
            logger.info("%s defeated", enemy.name)
            self.event_manager.publish(
                EnemyDefeated(
                    timestamp=timestamp,
                    enemy_id=enemy.enemy_id,
                    rewards_hint=enemy.rewards_hint(),
                ),
                source="CombatEngine"
            )
        if victory:
            self._publish_ended(encounter, timestamp)

    def _publish_ended(self, encounter: Encounter, timestamp: float) -> None:
        logger.info("Encounter %s ended: %s", encounter.encounter_id, encounter.status_name)
        self.event_manager.publish(
            EncounterEnded(
                timestamp=timestamp,
                encounter_id=encounter.encounter_id,
                status=encounter.status,
            ),
            source="CombatEngine"
        )
