#!/usr/bin/env python3
"""Scripted demo of the keystroke -> feel -> combat pipeline."""

import argparse

import numpy as np

from inkblade.core.events import EventManager
from inkblade.core.logging_config import configure_logging
from inkblade.core.tuning import load_tuning
from inkblade.game.combat_engine import CombatEngine
from inkblade.game.combat_log import CombatLog, LogLevel
from inkblade.game.encounter import PlayerState
from inkblade.game.entities import load_enemy_templates
from inkblade.game.keystroke_pipeline import BACKSPACE, KeystrokePipeline
from inkblade.game.typing_feel import TypingFeelEngine

WORDS = ["incantation", "ember", "silence", "threshold", "unravel", "oblivion"]


def main():
    parser = argparse.ArgumentParser(description="Run a scripted typing battle")
    parser.add_argument("--floor", type=int, default=1)
    parser.add_argument("--seed", type=int, default=7)
    parser.add_argument("--interval-ms", type=float, default=110.0)
    parser.add_argument("--debug", action="store_true", help="Show keystroke-level log lines")
    args = parser.parse_args()

    configure_logging()
    rng = np.random.default_rng(args.seed)
    tuning = load_tuning()

    event_manager = EventManager()
    combat_log = CombatLog(event_manager, log_level=LogLevel.DEBUG if args.debug else LogLevel.INFO)
    feel_engine = TypingFeelEngine(event_manager, tuning.feel)
    combat_engine = CombatEngine(event_manager, feel_engine, tuning.combat, rng=rng)
    pipeline = KeystrokePipeline(feel_engine, combat_engine)

    enemy = load_enemy_templates().random_for_floor(args.floor, rng)
    encounter = combat_engine.start_encounter(
        PlayerState(max_hp=60, attack_power=4, max_mana=20), [enemy], timestamp=0.0
    )

    clock = 0.5
    try:
        for index, word in enumerate(WORDS * 3):
            # Every third word gets a typo that is corrected with a backspace
            keys = word if index % 3 else word[:2] + "x" + BACKSPACE + word[2:]
            pipeline.type_word(keys, clock, args.interval_ms, word=word)
            clock += len(keys) * args.interval_ms / 1000.0 + 0.3
            if not encounter.is_active:
                break
            combat_engine.advance_time(len(keys) * args.interval_ms + 300.0, clock)
            if not encounter.is_active:
                break
        else:
            combat_engine.flee(clock)
    finally:
        for line in combat_log.formatted():
            print(line)
        print(f"\n{encounter}")
        event_manager.shutdown()


if __name__ == "__main__":
    main()
