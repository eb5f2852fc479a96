"""
Tests for the CombatEngine.

Covers damage multipliers, critical hits and status effects, event ordering
for a resolved attempt, incoming damage, fleeing and enemy behaviour timers.
"""

from unittest.mock import Mock

import numpy as np
import pytest

from inkblade.core.data import EncounterStatus, FlowState, StatusEffect
from inkblade.core.events import EventType
from inkblade.core.exceptions import InvalidStateError
from inkblade.core.tuning import CombatTuning
from inkblade.game.combat_engine import CombatEngine
from inkblade.game.encounter import PlayerState
from inkblade.game.typing_attempt import TypingAttempt, attempt_from_keys
from inkblade.game.typing_feel import FeelSnapshot
from tests.conftest import make_enemy

BACKSPACE = None


def typed(word, keys=None, start=1.0, interval=0.05):
    """Attempt built from `keys` (defaults to the word) at an even cadence."""
    keys = list(word if keys is None else keys)
    return attempt_from_keys(word, [(k, start + i * interval) for i, k in enumerate(keys)])


def feel(combo=0, flow=FlowState.BUILDING, perfect=False, crit=0.0, timestamp=1.0):
    return FeelSnapshot(
        combo_streak=combo,
        flow_state=flow,
        perfect_word=perfect,
        cadence_score=1.0,
        accuracy=1.0,
        timestamp=timestamp,
        crit_probability=crit,
    )


def always_crit_rng():
    rng = Mock()
    rng.random.return_value = 0.0
    rng.integers.return_value = 0
    return rng


class TestMultipliers:
    """Test the individual damage terms."""

    def test_base_damage_uses_word_length_and_defense(self, combat_engine):
        player = PlayerState(max_hp=10, attack_power=4)
        assert combat_engine.base_damage(player, make_enemy(defense=0), 4) == 10
        assert combat_engine.base_damage(player, make_enemy(defense=5), 4) == 8

    def test_base_damage_floor(self, combat_engine):
        player = PlayerState(max_hp=10, attack_power=0)
        assert combat_engine.base_damage(player, make_enemy(defense=200), 1) == 1

    def test_speed_multiplier_bounds(self, combat_engine):
        # 4 characters: expected 400 + 4 * 250 = 1400ms
        assert combat_engine.speed_multiplier(4, 700.0) == pytest.approx(2.0)
        assert combat_engine.speed_multiplier(4, 1000.0) == pytest.approx(1.4)
        assert combat_engine.speed_multiplier(4, 5000.0) == 1.0
        assert combat_engine.speed_multiplier(4, 0.0) == 2.0

    def test_accuracy_multiplier(self, combat_engine):
        assert combat_engine.accuracy_multiplier(0, False) == pytest.approx(1.25)
        assert combat_engine.accuracy_multiplier(0, True) == pytest.approx(1.5)
        assert combat_engine.accuracy_multiplier(3, False) == pytest.approx(0.7)
        assert combat_engine.accuracy_multiplier(20, False) == pytest.approx(0.5)

    def test_combo_multiplier_never_exceeds_cap(self, combat_engine):
        multipliers = [combat_engine.combo_multiplier(streak) for streak in range(200)]

        assert max(multipliers) == pytest.approx(3.0)
        assert all(m <= 3.0 for m in multipliers)
        assert multipliers == sorted(multipliers)
        assert combat_engine.combo_multiplier(5) == pytest.approx(1.5)

    def test_roll_critical_with_zero_chance_never_rolls(self, event_manager, feel_engine):
        rng = always_crit_rng()
        engine = CombatEngine(event_manager, feel_engine, rng=rng)

        assert not engine.roll_critical(0.0)
        rng.random.assert_not_called()
        assert engine.roll_critical(0.1)

    def test_crit_rate_matches_probability(self, event_manager, feel_engine):
        engine = CombatEngine(event_manager, feel_engine, rng=np.random.default_rng(42))
        rolls = [engine.roll_critical(0.25) for _ in range(4000)]
        assert 0.22 < sum(rolls) / len(rolls) < 0.28


class TestResolveAttempt:
    """Test resolving completed attempts against enemies."""

    def test_incantation_scenario(self, combat_engine, player, recorder):
        """Fast clean word, combo 5, Flowing: every bonus applies and nothing crits."""
        enemy = make_enemy(hp=500)
        combat_engine.start_encounter(player, [enemy], timestamp=0.0)
        recorder.clear()

        attempt = typed("incantation")
        outcome = combat_engine.resolve_attempt(
            attempt, feel(combo=5, flow=FlowState.FLOWING, perfect=True, crit=0.0)
        )

        assert outcome.speed_multiplier > 1.0
        assert outcome.accuracy_multiplier > 1.0
        assert outcome.combo_multiplier == pytest.approx(1.5)
        assert not outcome.critical_hit
        assert outcome.was_perfect_word

        damage_events = recorder.of_type(EventType.DAMAGE_DEALT)
        assert len(damage_events) == 1
        assert damage_events[0].amount == outcome.final_damage
        assert damage_events[0].was_perfect_word
        assert damage_events[0].target_id == enemy.enemy_id
        assert recorder.of_type(EventType.CRITICAL_HIT) == []
        assert enemy.current_hp == 500 - outcome.final_damage

    def test_final_damage_is_product_of_multipliers(self, combat_engine, player):
        enemy = make_enemy(hp=500)
        combat_engine.start_encounter(player, [enemy], timestamp=0.0)

        # 11 characters in 500ms: speed capped at 2.0; clean and perfect: 1.5
        outcome = combat_engine.resolve_attempt(typed("incantation"), feel(combo=5, perfect=True))

        assert outcome.base_damage == 20
        assert outcome.final_damage == round(20 * 2.0 * 1.5 * 1.5)
        assert outcome.total_multiplier == pytest.approx(4.5)

    def test_backspace_scenario(self, combat_engine, player):
        """A mid-word correction loses the perfect bonus and the clean bonus."""
        first, second = make_enemy("e1", hp=500), make_enemy("e2", hp=500)
        combat_engine.start_encounter(player, [first, second], timestamp=0.0)

        clean = combat_engine.resolve_attempt(typed("incantation"), feel(perfect=True), target="e1")
        corrected_attempt = typed("incantation", ["i", "n", "x", BACKSPACE] + list("cantation"))
        corrected = combat_engine.resolve_attempt(corrected_attempt, feel(perfect=True), target="e2")

        assert corrected_attempt.had_backspaces
        assert not corrected.was_perfect_word
        assert corrected.accuracy_multiplier < clean.accuracy_multiplier
        assert corrected.accuracy < clean.accuracy

    def test_exact_zero_health_defeats_enemy(self, combat_engine, player, recorder):
        # "inks": base 4 + 4 * 1.5 = 10; slow, perfect, no combo: 10 * 1.5 = 15
        enemy = make_enemy(hp=15, xp_reward=12, ink_reward=8)
        combat_engine.start_encounter(player, [enemy], timestamp=0.0)
        recorder.clear()

        outcome = combat_engine.resolve_attempt(typed("inks", interval=1.0), feel(perfect=True))

        assert outcome.final_damage == 15
        assert enemy.current_hp == 0
        assert outcome.target_defeated
        assert recorder.types() == [
            EventType.DAMAGE_DEALT,
            EventType.ENEMY_DEFEATED,
            EventType.ENCOUNTER_ENDED,
        ]
        defeated = recorder.of_type(EventType.ENEMY_DEFEATED)[0]
        assert defeated.enemy_id == enemy.enemy_id
        assert (defeated.rewards_hint.xp, defeated.rewards_hint.ink) == (12, 8)
        assert recorder.of_type(EventType.ENCOUNTER_ENDED)[0].status == EncounterStatus.VICTORY

        with pytest.raises(InvalidStateError):
            combat_engine.resolve_attempt(typed("inks"), feel(), target=enemy.enemy_id)

    def test_defeated_enemy_cannot_be_targeted_while_encounter_continues(self, combat_engine, player):
        weak, strong = make_enemy("weak", hp=1), make_enemy("strong", hp=500)
        encounter = combat_engine.start_encounter(player, [weak, strong], timestamp=0.0)

        combat_engine.resolve_attempt(typed("ink"), feel(), target="weak")

        assert encounter.is_active
        with pytest.raises(InvalidStateError):
            combat_engine.resolve_attempt(typed("ink"), feel(), target="weak")

    def test_default_target_is_first_living_enemy(self, combat_engine, player):
        weak, strong = make_enemy("weak", hp=1), make_enemy("strong", hp=500)
        combat_engine.start_encounter(player, [weak, strong], timestamp=0.0)

        assert combat_engine.resolve_attempt(typed("ink"), feel()).target_id == "weak"
        assert combat_engine.resolve_attempt(typed("ink"), feel()).target_id == "strong"

    def test_target_accepts_enemy_object(self, combat_engine, player):
        first, second = make_enemy("e1", hp=500), make_enemy("e2", hp=500)
        combat_engine.start_encounter(player, [first, second], timestamp=0.0)

        outcome = combat_engine.resolve_attempt(typed("ink"), feel(), target=second)
        assert outcome.target_id == "e2"

    def test_unknown_target_rejected(self, combat_engine, player, goblin):
        combat_engine.start_encounter(player, [goblin], timestamp=0.0)
        with pytest.raises(InvalidStateError):
            combat_engine.resolve_attempt(typed("ink"), feel(), target="nobody")

    @pytest.mark.parametrize("defense, errors", [(0, 0), (50, 3), (500, 10), (10_000, 40)])
    def test_final_damage_is_at_least_one(self, combat_engine, defense, errors):
        player = PlayerState(max_hp=10, attack_power=0)
        combat_engine.start_encounter(player, [make_enemy(hp=10_000, defense=defense)], timestamp=0.0)

        keys = ["x"] * errors + [BACKSPACE] * errors + ["a"]
        outcome = combat_engine.resolve_attempt(typed("a", keys, interval=2.0), feel())

        assert outcome.final_damage >= 1

    def test_incomplete_attempt_rejected(self, combat_engine, player, goblin):
        combat_engine.start_encounter(player, [goblin], timestamp=0.0)
        attempt = TypingAttempt("ink", started_at=1.0)
        attempt.type_char("i", 1.1)

        with pytest.raises(InvalidStateError):
            combat_engine.resolve_attempt(attempt, feel())

    def test_resolve_without_encounter_rejected(self, combat_engine):
        with pytest.raises(InvalidStateError):
            combat_engine.resolve_attempt(typed("ink"), feel())

    def test_feel_defaults_to_engine_snapshot(self, combat_engine, feel_engine, player):
        combat_engine.start_encounter(player, [make_enemy(hp=500)], timestamp=0.0)
        attempt = typed("ink")
        for i in range(3):
            feel_engine.on_keystroke(is_correct=True, is_backspace=False, timestamp=1.0 + i * 0.05)

        outcome = combat_engine.resolve_attempt(attempt)

        assert outcome.combo_multiplier == pytest.approx(1.3)

    def test_state_is_updated_before_events(self, combat_engine, event_manager, player):
        enemy = make_enemy(hp=1)
        encounter = combat_engine.start_encounter(player, [enemy], timestamp=0.0)
        seen = []
        event_manager.subscribe(
            EventType.DAMAGE_DEALT,
            lambda e: seen.append((enemy.current_hp, encounter.status)),
        )

        combat_engine.resolve_attempt(typed("ink"), feel())

        assert seen == [(0, EncounterStatus.VICTORY)]


class TestCriticalHits:
    """Test crit rolls, CriticalHit events and stagger."""

    @pytest.fixture
    def crit_engine(self, event_manager, feel_engine, clock):
        return CombatEngine(event_manager, feel_engine, CombatTuning(), rng=always_crit_rng(), clock=clock)

    def test_crit_doubles_damage_and_staggers(self, crit_engine, player, recorder):
        enemy = make_enemy(hp=500, attack_interval_ms=3000.0)
        crit_engine.start_encounter(player, [enemy], timestamp=0.0)
        recorder.clear()

        outcome = crit_engine.resolve_attempt(typed("inks", interval=1.0), feel(perfect=True, crit=0.1))

        assert outcome.critical_hit
        assert outcome.crit_multiplier == 2.0
        assert outcome.final_damage == 30
        assert outcome.status_effects == (StatusEffect.STAGGERED,)
        assert StatusEffect.STAGGERED in enemy.status_effects
        assert enemy.attack_timer_ms == pytest.approx(3750.0)
        assert recorder.types() == [
            EventType.DAMAGE_DEALT,
            EventType.CRITICAL_HIT,
            EventType.STATUS_EFFECT_APPLIED,
        ]
        crit = recorder.of_type(EventType.CRITICAL_HIT)[0]
        assert crit.multiplier == 2.0
        assert crit.target_id == enemy.enemy_id

    def test_lethal_crit_does_not_stagger(self, crit_engine, player, recorder):
        crit_engine.start_encounter(player, [make_enemy(hp=5)], timestamp=0.0)
        recorder.clear()

        outcome = crit_engine.resolve_attempt(typed("ink"), feel(crit=0.5))

        assert outcome.status_effects == ()
        assert recorder.types() == [
            EventType.DAMAGE_DEALT,
            EventType.CRITICAL_HIT,
            EventType.ENEMY_DEFEATED,
            EventType.ENCOUNTER_ENDED,
        ]


class TestEncounterLifecycle:
    """Test starting and ending encounters."""

    def test_start_encounter_publishes_event(self, combat_engine, player, recorder):
        first, second = make_enemy("e1"), make_enemy("e2")
        encounter = combat_engine.start_encounter(player, [first, second], encounter_id="enc-1", timestamp=2.0)

        assert combat_engine.encounter is encounter
        started = recorder.of_type(EventType.ENCOUNTER_STARTED)[0]
        assert started.encounter_id == "enc-1"
        assert started.enemy_ids == ("e1", "e2")
        assert started.timestamp == 2.0

    def test_cannot_start_while_active(self, combat_engine, player, goblin):
        combat_engine.start_encounter(player, [goblin], timestamp=0.0)
        with pytest.raises(InvalidStateError):
            combat_engine.start_encounter(player, [make_enemy("other")], timestamp=1.0)

    def test_flee_ends_encounter(self, combat_engine, player, goblin, recorder):
        encounter = combat_engine.start_encounter(player, [goblin], timestamp=0.0)
        combat_engine.flee(timestamp=1.0)

        assert encounter.status == EncounterStatus.FLED
        assert recorder.of_type(EventType.ENCOUNTER_ENDED)[0].status == EncounterStatus.FLED

        # A new encounter may start once the old one is over
        combat_engine.start_encounter(player, [make_enemy("next")], timestamp=2.0)

    def test_terminal_encounter_rejects_calls(self, combat_engine, player, goblin):
        combat_engine.start_encounter(player, [goblin], timestamp=0.0)
        combat_engine.flee(timestamp=1.0)

        with pytest.raises(InvalidStateError):
            combat_engine.flee(timestamp=2.0)
        with pytest.raises(InvalidStateError):
            combat_engine.apply_incoming_damage(5, goblin.enemy_id, timestamp=2.0)
        with pytest.raises(InvalidStateError):
            combat_engine.advance_time(1000.0, timestamp=2.0)
        with pytest.raises(InvalidStateError):
            combat_engine.resolve_attempt(typed("ink"), feel())


class TestIncomingDamage:
    """Test the enemy-to-player path."""

    def test_player_damaged(self, combat_engine, player, goblin, recorder):
        combat_engine.start_encounter(player, [goblin], timestamp=0.0)
        recorder.clear()

        remaining = combat_engine.apply_incoming_damage(7, goblin.enemy_id, timestamp=1.0)

        assert remaining == 43
        damaged = recorder.of_type(EventType.PLAYER_DAMAGED)[0]
        assert (damaged.amount, damaged.source_id) == (7, goblin.enemy_id)
        assert recorder.types() == [EventType.PLAYER_DAMAGED]

    def test_lethal_damage_defeats_player(self, combat_engine, goblin, recorder):
        encounter = combat_engine.start_encounter(PlayerState(max_hp=5), [goblin], timestamp=0.0)
        recorder.clear()

        remaining = combat_engine.apply_incoming_damage(9, goblin.enemy_id, timestamp=1.0)

        assert remaining == 0
        assert encounter.status == EncounterStatus.DEFEAT
        assert recorder.types() == [
            EventType.PLAYER_DAMAGED,
            EventType.PLAYER_DEFEATED,
            EventType.ENCOUNTER_ENDED,
        ]
        assert recorder.of_type(EventType.ENCOUNTER_ENDED)[0].status == EncounterStatus.DEFEAT

    def test_negative_damage_rejected(self, combat_engine, player, goblin):
        combat_engine.start_encounter(player, [goblin], timestamp=0.0)
        with pytest.raises(ValueError):
            combat_engine.apply_incoming_damage(-1, goblin.enemy_id)

    def test_timestamp_defaults_to_clock(self, combat_engine, player, goblin, recorder, clock):
        combat_engine.start_encounter(player, [goblin])
        combat_engine.apply_incoming_damage(1, goblin.enemy_id)

        assert recorder.of_type(EventType.PLAYER_DAMAGED)[0].timestamp == clock.now


class TestEnemyTimers:
    """Test advance_time and enemy strikes."""

    def test_enemy_strikes_when_timer_runs_out(self, combat_engine, player):
        enemy = make_enemy(attack_power=5, attack_interval_ms=3000.0)
        combat_engine.start_encounter(player, [enemy], timestamp=0.0)

        assert combat_engine.advance_time(2999.0, timestamp=3.0) == []
        strikes = combat_engine.advance_time(1.0, timestamp=3.0)

        assert len(strikes) == 1
        assert strikes[0].enemy_id == enemy.enemy_id
        assert strikes[0].damage == 5
        assert strikes[0].message.startswith(enemy.name)
        assert player.current_hp == 45
        assert enemy.attack_timer_ms == pytest.approx(3000.0)

    def test_long_gap_triggers_several_strikes(self, combat_engine, player):
        enemy = make_enemy(attack_power=5, attack_interval_ms=3000.0)
        combat_engine.start_encounter(player, [enemy], timestamp=0.0)

        strikes = combat_engine.advance_time(10_000.0, timestamp=10.0)

        assert len(strikes) == 3
        assert player.current_hp == 35
        assert enemy.attack_timer_ms == pytest.approx(2000.0)

    def test_strikes_stop_when_player_falls(self, combat_engine):
        enemy = make_enemy(attack_power=5, attack_interval_ms=1000.0)
        encounter = combat_engine.start_encounter(PlayerState(max_hp=8), [enemy], timestamp=0.0)

        strikes = combat_engine.advance_time(60_000.0, timestamp=60.0)

        assert len(strikes) == 2
        assert encounter.status == EncounterStatus.DEFEAT

    def test_stagger_delays_next_strike(self, combat_engine, player):
        enemy = make_enemy(attack_interval_ms=3000.0)
        combat_engine.start_encounter(player, [enemy], timestamp=0.0)
        enemy.apply_status(StatusEffect.STAGGERED, 750.0)

        assert combat_engine.advance_time(3000.0, timestamp=3.0) == []
        assert len(combat_engine.advance_time(750.0, timestamp=3.75)) == 1
        assert StatusEffect.STAGGERED not in enemy.status_effects

    def test_negative_elapsed_rejected(self, combat_engine, player, goblin):
        combat_engine.start_encounter(player, [goblin], timestamp=0.0)
        with pytest.raises(ValueError):
            combat_engine.advance_time(-1.0)
