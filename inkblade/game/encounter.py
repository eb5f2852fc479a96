"""
Encounter state owned by the combat engine.

An encounter holds the player's battle stats and the enemies they face, and
moves through a small state machine:

    ACTIVE -> VICTORY   all enemies defeated
    ACTIVE -> DEFEAT    player health reached zero
    ACTIVE -> FLED      player fled

Every state except ACTIVE is terminal.
"""
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from ..core.data import EncounterStatus, ENCOUNTER_STATUS_NAMES
from ..core.exceptions import InvalidStateError
from .entities.enemy import Enemy

EnemyRef = Union[str, Enemy]


@dataclass
class PlayerState:
    """The player's combat stats for the duration of an encounter."""
    max_hp: int
    attack_power: int = 0
    max_mana: int = 0
    current_hp: Optional[int] = None
    current_mana: Optional[int] = None

    def __post_init__(self):
        if self.max_hp <= 0:
            raise ValueError("Player must have positive max_hp")
        if self.current_hp is None:
            self.current_hp = self.max_hp
        if self.current_mana is None:
            self.current_mana = self.max_mana

    @property
    def is_defeated(self) -> bool:
        return self.current_hp <= 0

    @property
    def health_percent(self) -> float:
        return max(0.0, self.current_hp / self.max_hp * 100.0)

    def take_damage(self, amount: int) -> int:
        """Reduce health, never below zero; returns remaining health."""
        self.current_hp = max(0, self.current_hp - amount)
        return self.current_hp


class Encounter:
    """One battle: the player against one or more enemies."""

    def __init__(
        self,
        player: PlayerState,
        enemies: Iterable[Enemy],
        encounter_id: Optional[str] = None
    ):
        self.encounter_id = encounter_id or f"encounter-{uuid.uuid4().hex[:8]}"
        self.player = player
        self.enemies: dict[str, Enemy] = {}
        for enemy in enemies:
            if enemy.enemy_id in self.enemies:
                raise ValueError(f"Duplicate enemy id {enemy.enemy_id}")
            if enemy.is_defeated:
                raise ValueError(f"Enemy {enemy.enemy_id} is already defeated")
            self.enemies[enemy.enemy_id] = enemy
        if not self.enemies:
            raise ValueError("An encounter needs at least one enemy")
        self.status = EncounterStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == EncounterStatus.ACTIVE

    @property
    def status_name(self) -> str:
        return ENCOUNTER_STATUS_NAMES[self.status]

    def living_enemies(self) -> list[Enemy]:
        return [e for e in self.enemies.values() if not e.is_defeated]

    def all_enemies_defeated(self) -> bool:
        return not self.living_enemies()

    def get_enemy(self, ref: EnemyRef) -> Enemy:
        enemy_id = ref.enemy_id if isinstance(ref, Enemy) else ref
        try:
            return self.enemies[enemy_id]
        except KeyError:
            raise InvalidStateError(
                f"Enemy {enemy_id} is not part of encounter {self.encounter_id}"
            )

    def ensure_active(self) -> None:
        if not self.is_active:
            raise InvalidStateError(
                f"Encounter {self.encounter_id} has ended ({self.status_name})"
            )

    def finish(self, status: EncounterStatus) -> None:
        """Move to a terminal status."""
        self.ensure_active()
        if not status.is_terminal:
            raise InvalidStateError("An encounter can only finish in a terminal status")
        self.status = status

    def __repr__(self) -> str:
        return (
            f"Encounter({self.encounter_id}, status={self.status_name}, "
            f"player_hp={self.player.current_hp}/{self.player.max_hp}, "
            f"enemies={len(self.living_enemies())}/{len(self.enemies)})"
        )
