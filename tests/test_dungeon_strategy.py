import unittest

from hwbot.modes.dungeon.controller import DungeonState
from hwbot.modes.dungeon.strategy import (
    NONPRIME,
    PRIME,
    AvoidHeroesStrategy,
    ElementalPriorityStrategy,
    PowerThresholdStrategy,
    build_strategy,
)
from hwbot.network.events import AttackOption, AttackOptions


def options(prime_power, nonprime_power, prime_type="water", nonprime_type="earth", prime_heroes=(), nonprime_heroes=()):
    return AttackOptions(
        prime=AttackOption(prime_power, frozenset(prime_heroes), prime_type),
        nonprime=AttackOption(nonprime_power, frozenset(nonprime_heroes), nonprime_type),
    )


class PowerThresholdTests(unittest.TestCase):
    def test_large_gap_picks_stronger(self) -> None:
        strategy = PowerThresholdStrategy(threshold=100)
        self.assertEqual(strategy.choose(options(100, 500), DungeonState()), NONPRIME)
        self.assertEqual(strategy.choose(options(500, 100), DungeonState()), PRIME)

    def test_small_gap_picks_weaker(self) -> None:
        strategy = PowerThresholdStrategy(threshold=100)
        self.assertEqual(strategy.choose(options(100, 120), DungeonState()), PRIME)
        self.assertEqual(strategy.choose(options(120, 100), DungeonState()), NONPRIME)

    def test_equal_power_goes_to_prime(self) -> None:
        self.assertEqual(PowerThresholdStrategy().choose(options(300, 300), DungeonState()), PRIME)


class ElementalPriorityTests(unittest.TestCase):
    def test_priority_types_in_order(self) -> None:
        strategy = ElementalPriorityStrategy(("fire", "neutral"))
        state = DungeonState()
        self.assertEqual(strategy.choose(options(1, 2, "neutral", "fire"), state), NONPRIME)
        self.assertEqual(strategy.choose(options(1, 2, "fire", "neutral"), state), PRIME)
        self.assertEqual(strategy.choose(options(1, 2, "water", "neutral"), state), NONPRIME)
        self.assertFalse(state.alt_pick_stronger)

    def test_alternates_when_no_priority_type(self) -> None:
        strategy = ElementalPriorityStrategy(("fire", "neutral"))
        state = DungeonState()
        picks = [strategy.choose(options(100, 500), state) for _ in range(4)]
        # weaker, stronger, weaker, stronger
        self.assertEqual(picks, [PRIME, NONPRIME, PRIME, NONPRIME])


class AvoidHeroesTests(unittest.TestCase):
    def test_avoids_formation_with_listed_hero(self) -> None:
        strategy = AvoidHeroesStrategy(avoid_hero_ids={42}, threshold=100)
        self.assertEqual(strategy.choose(options(1, 2, prime_heroes=(42,)), DungeonState()), NONPRIME)
        self.assertEqual(strategy.choose(options(1, 2, nonprime_heroes=(42,)), DungeonState()), PRIME)

    def test_falls_back_to_power_rule(self) -> None:
        strategy = AvoidHeroesStrategy(avoid_hero_ids={42}, threshold=100)
        both = options(100, 500, prime_heroes=(42,), nonprime_heroes=(42,))
        self.assertEqual(strategy.choose(both, DungeonState()), NONPRIME)


class BuildStrategyTests(unittest.TestCase):
    def test_auto_alias(self) -> None:
        self.assertIsInstance(build_strategy("auto", {}), ElementalPriorityStrategy)

    def test_threshold_from_config(self) -> None:
        strategy = build_strategy("power_threshold", {"attack_power_threshold": 10})
        self.assertEqual(strategy.threshold, 10)

    def test_unknown_name(self) -> None:
        with self.assertRaises(ValueError):
            build_strategy("random", {})


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
