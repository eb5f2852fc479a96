"""Entities that take part in combat."""

from .enemy import (
    Enemy,
    EnemyTemplate,
    EnemyTemplateLibrary,
    load_enemy_templates,
    tier_for_floor,
)

__all__ = [
    "Enemy",
    "EnemyTemplate",
    "EnemyTemplateLibrary",
    "load_enemy_templates",
    "tier_for_floor",
]
