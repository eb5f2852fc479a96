"""
Tuning configuration for the feel and combat engines.

This module handles loading and validation of the YAML file that holds every
numeric knob of the combat core: combo decay, the rolling window sizes, the
flow thresholds, the critical-hit curve and the damage multipliers.

Only the ordering rules are structural: flow thresholds must increase with
tier, the crit curve must not decrease with tier and stays within [0, 1],
and no multiplier cap may drop below 1.0.
"""
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from .data import FlowState
from .exceptions import TuningError

logger = logging.getLogger(__name__)

DEFAULT_TUNING_PATH = "assets/config/combat_tuning.yaml"


def _default_crit_curve() -> dict[FlowState, float]:
    return {
        FlowState.BUILDING: 0.02,
        FlowState.FLOWING: 0.10,
        FlowState.TRANSCENDENT: 0.25,
    }


@dataclass(frozen=True)
class FeelTuning:
    """Knobs for combo decay and flow tier derivation."""

    # Combo streak breaks when no qualifying keystroke arrives within this window
    combo_decay_ms: float = 1500.0

    # Rolling window sizes (number of samples)
    cadence_window: int = 12
    accuracy_window: int = 20
    min_cadence_samples: int = 4

    # Share of the combined flow score given to cadence consistency
    cadence_weight: float = 0.5

    # Combined score needed to target each tier
    flowing_threshold: float = 0.6
    transcendent_threshold: float = 0.85

    crit_chance: dict[FlowState, float] = field(default_factory=_default_crit_curve)

    def validate(self) -> None:
        if self.combo_decay_ms <= 0:
            raise TuningError("combo_decay_ms must be positive")
        if self.cadence_window < 2 or self.accuracy_window < 1:
            raise TuningError("cadence_window must be >= 2 and accuracy_window >= 1")
        if not 1 <= self.min_cadence_samples <= self.cadence_window:
            raise TuningError("min_cadence_samples must be between 1 and cadence_window")
        if not 0.0 <= self.cadence_weight <= 1.0:
            raise TuningError("cadence_weight must be within [0, 1]")
        if not 0.0 < self.flowing_threshold < self.transcendent_threshold <= 1.0:
            raise TuningError(
                "flow thresholds must satisfy 0 < flowing < transcendent <= 1"
            )

        missing = [state.name for state in FlowState if state not in self.crit_chance]
        if missing:
            raise TuningError(f"crit_chance is missing tiers: {', '.join(missing)}")
        previous = 0.0
        for state in FlowState:
            chance = self.crit_chance[state]
            if not 0.0 <= chance <= 1.0:
                raise TuningError(f"crit_chance for {state.name} must be within [0, 1]")
            if chance < previous:
                raise TuningError("crit_chance must not decrease as flow tier rises")
            previous = chance


@dataclass(frozen=True)
class CombatTuning:
    """Knobs for damage resolution and enemy behaviour."""

    # Base damage: attack power plus this much per character of the word
    damage_per_char: float = 1.5

    # Expected typing time for a word: baseline_ms + baseline_ms_per_char * len(word)
    baseline_ms: float = 400.0
    baseline_ms_per_char: float = 250.0
    max_speed_multiplier: float = 2.0

    # Accuracy multipliers
    clean_accuracy_multiplier: float = 1.25
    perfect_word_multiplier: float = 1.2
    error_penalty: float = 0.1
    min_accuracy_multiplier: float = 0.5

    # Combo multiplier: 1 + combo_step * streak, never above combo_cap
    combo_step: float = 0.1
    combo_cap: float = 3.0

    crit_multiplier: float = 2.0

    # How long a STAGGERED enemy's next attack is pushed back
    stagger_ms: float = 750.0

    def validate(self) -> None:
        if self.damage_per_char < 0:
            raise TuningError("damage_per_char must not be negative")
        if self.baseline_ms < 0 or self.baseline_ms_per_char <= 0:
            raise TuningError("baseline times must be positive")
        for name in ("max_speed_multiplier", "combo_cap", "crit_multiplier",
                     "clean_accuracy_multiplier", "perfect_word_multiplier"):
            if getattr(self, name) < 1.0:
                raise TuningError(f"{name} must be at least 1.0")
        if not 0.0 < self.min_accuracy_multiplier <= 1.0:
            raise TuningError("min_accuracy_multiplier must be within (0, 1]")
        if self.error_penalty < 0 or self.combo_step < 0 or self.stagger_ms < 0:
            raise TuningError("error_penalty, combo_step and stagger_ms must not be negative")


@dataclass(frozen=True)
class Tuning:
    """Complete tuning for one game session."""
    feel: FeelTuning = field(default_factory=FeelTuning)
    combat: CombatTuning = field(default_factory=CombatTuning)

    def validate(self) -> "Tuning":
        self.feel.validate()
        self.combat.validate()
        return self

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Tuning":
        """Build validated tuning from parsed YAML, starting from the defaults."""
        if not isinstance(data, dict):
            raise TuningError("Tuning file must contain a mapping")
        unknown = set(data) - {"feel", "combat"}
        if unknown:
            raise TuningError(f"Unknown tuning sections: {', '.join(sorted(unknown))}")

        feel_data = _section(data, "feel")
        if "crit_chance" in feel_data:
            feel_data["crit_chance"] = _parse_crit_curve(feel_data["crit_chance"])

        tuning = cls(
            feel=_apply_overrides(FeelTuning(), feel_data, "feel"),
            combat=_apply_overrides(CombatTuning(), _section(data, "combat"), "combat"),
        )
        return tuning.validate()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    raw = data.get(name) or {}
    if not isinstance(raw, dict):
        raise TuningError(f"Tuning section '{name}' must be a mapping")
    return dict(raw)


def _number(value: Any, expected: type, label: str) -> Any:
    # YAML gives ints for whole numbers; bools and strings are never numbers here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TuningError(f"{label} must be a number, got {value!r}")
    if expected is int:
        if not float(value).is_integer():
            raise TuningError(f"{label} must be a whole number, got {value!r}")
        return int(value)
    return float(value)


def _apply_overrides(base: Any, overrides: dict[str, Any], section: str) -> Any:
    known = {f.name for f in fields(base)}
    unknown = set(overrides) - known
    if unknown:
        raise TuningError(f"Unknown keys in '{section}': {', '.join(sorted(unknown))}")
    coerced = {}
    for key, value in overrides.items():
        default = getattr(base, key)
        if isinstance(default, dict):
            coerced[key] = value
        else:
            coerced[key] = _number(value, type(default), f"{section}.{key}")
    return replace(base, **coerced)


def _parse_crit_curve(raw: Any) -> dict[FlowState, float]:
    if not isinstance(raw, dict):
        raise TuningError("crit_chance must map flow tiers to probabilities")
    curve = _default_crit_curve()
    for tier_name, chance in raw.items():
        try:
            state = FlowState[str(tier_name).upper()]
        except KeyError:
            raise TuningError(f"Unknown flow tier '{tier_name}' in crit_chance")
        curve[state] = _number(chance, float, f"crit_chance.{tier_name}")
    return curve


def _resolve_path(config_path: str) -> Path:
    # Handle both absolute and relative paths
    if os.path.isabs(config_path):
        return Path(config_path)
    # Assume relative to project root
    project_root = Path(__file__).parent.parent.parent
    return project_root / config_path


def load_tuning(config_path: Optional[str] = None) -> Tuning:
    """
    Load tuning from a YAML file.

    A missing file is not an error: the defaults are used and a warning is
    logged. A file that exists but is malformed raises TuningError.

    Args:
        config_path: Path to the YAML file; relative paths resolve against
            the project root

    Returns:
        Validated Tuning
    """
    config_file = _resolve_path(config_path or DEFAULT_TUNING_PATH)

    if not config_file.exists():
        logger.warning("Tuning file not found: %s, using defaults", config_file)
        return Tuning().validate()

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise TuningError(f"Could not parse tuning file {config_file}: {e}") from e

    tuning = Tuning.from_dict(data)
    logger.info("Loaded tuning from %s", config_file)
    return tuning
