"""Enemy entities and the templates they are built from.

Templates are loaded from YAML and turned into Enemy instances scaled for the
floor they appear on. Elite and boss variants apply their own multipliers on
top of the floor scaling.
"""

import os
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np
import yaml

from ...core.data import EnemyType, StatusEffect
from ...core.events import RewardsHint
from ...core.exceptions import TemplateError

DEFAULT_ATTACK_MESSAGES = ("attacks", "strikes", "hits you", "lunges at you")

# Multipliers applied by Enemy.make_elite()
ELITE_HP_MULTIPLIER = 1.5
ELITE_ATTACK_MULTIPLIER = 1.3
ELITE_REWARD_MULTIPLIER = 2.0

# Per-floor growth of template stats
FLOOR_SCALING = 0.1
BOSS_FLOOR_SCALING = 0.15


@dataclass(frozen=True)
class EnemyTemplate:
    """Floor-1 stats for one kind of enemy."""
    key: str
    name: str
    tier: int
    base_hp: int
    base_damage: int
    base_defense: int
    xp_reward: int
    ink_reward: int
    attack_interval_ms: float
    attack_messages: tuple[str, ...] = ()
    boss: bool = False


@dataclass
class Enemy:
    """An enemy taking part in an encounter."""
    enemy_id: str
    name: str
    max_hp: int
    attack_power: int
    defense: int = 0
    enemy_type: EnemyType = EnemyType.NORMAL
    xp_reward: int = 0
    ink_reward: int = 0
    attack_interval_ms: float = 3000.0
    attack_messages: tuple[str, ...] = ()
    current_hp: Optional[int] = None
    attack_timer_ms: Optional[float] = None
    status_effects: set[StatusEffect] = field(default_factory=set)

    def __post_init__(self):
        if self.max_hp <= 0:
            raise ValueError(f"Enemy {self.name} must have positive max_hp")
        if self.attack_interval_ms <= 0:
            raise ValueError(f"Enemy {self.name} must have a positive attack interval")
        if self.current_hp is None:
            self.current_hp = self.max_hp
        if self.attack_timer_ms is None:
            self.attack_timer_ms = self.attack_interval_ms

    @property
    def is_defeated(self) -> bool:
        return self.current_hp <= 0

    @property
    def is_boss(self) -> bool:
        return self.enemy_type == EnemyType.BOSS

    @property
    def health_percent(self) -> float:
        return max(0.0, self.current_hp / self.max_hp * 100.0)

    def take_damage(self, amount: int) -> int:
        """Reduce health, never below zero; returns remaining health."""
        self.current_hp = max(0, self.current_hp - amount)
        return self.current_hp

    def apply_status(self, effect: StatusEffect, stagger_ms: float = 0.0) -> None:
        self.status_effects.add(effect)
        if effect == StatusEffect.STAGGERED:
            self.attack_timer_ms += stagger_ms

    def rewards_hint(self) -> RewardsHint:
        return RewardsHint(xp=self.xp_reward, ink=self.ink_reward)

    def get_attack_message(self, rng: Optional[np.random.Generator] = None) -> str:
        rng = rng or np.random.default_rng()
        messages = self.attack_messages or DEFAULT_ATTACK_MESSAGES
        return str(messages[int(rng.integers(len(messages)))])

    def make_elite(self) -> "Enemy":
        """Promote to an elite variant in place and return self."""
        self.name = f"Elite {self.name}"
        self.max_hp = int(self.max_hp * ELITE_HP_MULTIPLIER)
        self.current_hp = self.max_hp
        self.attack_power = int(self.attack_power * ELITE_ATTACK_MULTIPLIER)
        self.xp_reward = int(self.xp_reward * ELITE_REWARD_MULTIPLIER)
        self.ink_reward = int(self.ink_reward * ELITE_REWARD_MULTIPLIER)
        self.enemy_type = EnemyType.ELITE
        return self

    @classmethod
    def from_template(
        cls,
        template: EnemyTemplate,
        floor: int = 1,
        enemy_id: Optional[str] = None
    ) -> "Enemy":
        """Create an enemy from a template, scaled for the floor."""
        per_floor = BOSS_FLOOR_SCALING if template.boss else FLOOR_SCALING
        scale = 1.0 + (max(1, floor) - 1) * per_floor
        return cls(
            enemy_id=enemy_id or f"{template.key}-{uuid.uuid4().hex[:8]}",
            name=template.name,
            max_hp=max(1, int(template.base_hp * scale)),
            attack_power=int(template.base_damage * scale),
            defense=int(template.base_defense * scale),
            enemy_type=EnemyType.BOSS if template.boss else EnemyType.NORMAL,
            xp_reward=int(template.xp_reward * scale),
            ink_reward=int(template.ink_reward * scale),
            attack_interval_ms=template.attack_interval_ms,
            attack_messages=template.attack_messages,
        )


def tier_for_floor(floor: int) -> int:
    """Template tier used for ordinary enemies on a floor."""
    return int(np.clip((floor - 1) // 2 + 1, 1, 7))


class EnemyTemplateLibrary:
    """Enemy templates indexed by key and tier."""

    def __init__(self, templates: dict[str, EnemyTemplate]):
        self.templates = templates

    def get(self, key: str) -> EnemyTemplate:
        try:
            return self.templates[key]
        except KeyError:
            raise KeyError(f"Unknown enemy template: {key}")

    def by_tier(self, tier: int) -> list[EnemyTemplate]:
        return [t for t in self.templates.values() if t.tier == tier and not t.boss]

    def bosses(self) -> list[EnemyTemplate]:
        return [t for t in self.templates.values() if t.boss]

    def random_for_floor(self, floor: int, rng: Optional[np.random.Generator] = None) -> Enemy:
        """Spawn a random ordinary enemy appropriate for the floor.

        Falls back to the nearest lower tier with templates when the floor's
        own tier is empty.
        """
        rng = rng or np.random.default_rng()
        tier = tier_for_floor(floor)
        while tier >= 1:
            pool = self.by_tier(tier)
            if pool:
                return Enemy.from_template(pool[int(rng.integers(len(pool)))], floor)
            tier -= 1
        raise TemplateError("No ordinary enemy templates are available")

    def random_elite(self, floor: int, rng: Optional[np.random.Generator] = None) -> Enemy:
        return self.random_for_floor(floor, rng).make_elite()

    def random_boss(self, floor: int, rng: Optional[np.random.Generator] = None) -> Enemy:
        rng = rng or np.random.default_rng()
        pool = self.bosses()
        if not pool:
            raise TemplateError("No boss templates are available")
        return Enemy.from_template(pool[int(rng.integers(len(pool)))], floor)


def _parse_template(key: str, data: Any) -> EnemyTemplate:
    if not isinstance(data, dict):
        raise TemplateError(f"Template '{key}' must be a mapping")
    try:
        return EnemyTemplate(
            key=key,
            name=str(data["name"]),
            tier=int(data["tier"]),
            base_hp=int(data["base_hp"]),
            base_damage=int(data["base_damage"]),
            base_defense=int(data.get("base_defense", 0)),
            xp_reward=int(data.get("xp_reward", 0)),
            ink_reward=int(data.get("ink_reward", 0)),
            attack_interval_ms=float(data.get("attack_interval_ms", 3000)),
            attack_messages=tuple(str(m) for m in data.get("attack_messages", [])),
            boss=bool(data.get("boss", False)),
        )
    except KeyError as e:
        raise TemplateError(f"Template '{key}' is missing field {e}") from e
    except (TypeError, ValueError) as e:
        raise TemplateError(f"Template '{key}' has an invalid value: {e}") from e


def load_enemy_templates(yaml_path: Optional[str] = None) -> EnemyTemplateLibrary:
    """Load enemy templates from YAML file.

    Returns:
        Library of templates keyed by template key
    """
    if yaml_path is None:
        # Get the project root directory (three levels up from this file)
        current_dir = os.path.dirname(os.path.abspath(__file__))
        project_root = os.path.dirname(os.path.dirname(os.path.dirname(current_dir)))
        yaml_path = os.path.join(
            project_root, "assets", "data", "enemies", "enemy_templates.yaml"
        )

    try:
        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Enemy templates file not found: {yaml_path}")

    if not isinstance(data, dict) or not isinstance(data.get("enemy_templates"), dict):
        raise TemplateError(f"{yaml_path} has no 'enemy_templates' mapping")

    templates = {
        key: _parse_template(key, template_data)
        for key, template_data in data["enemy_templates"].items()
    }
    return EnemyTemplateLibrary(templates)
