"""Attack choice on the dungeon floors that offer two enemy formations."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Mapping, Sequence, Type

from hwbot.network.events import AttackOptions

logger = logging.getLogger("hwbot.dungeon")

PRIME = "attack_prime"
NONPRIME = "attack_nonprime"


def stronger(options: AttackOptions) -> str:
    return PRIME if options.prime.power >= options.nonprime.power else NONPRIME


def weaker(options: AttackOptions) -> str:
    return PRIME if options.prime.power <= options.nonprime.power else NONPRIME


class AttackStrategy(ABC):
    name: str = "base"

    @abstractmethod
    def choose(self, options: AttackOptions, state: Any) -> str:
        """Return the button to click: ``attack_prime`` or ``attack_nonprime``."""
        raise NotImplementedError


class PowerThresholdStrategy(AttackStrategy):
    """Weaker formation normally; the stronger one once the power gap exceeds ``threshold``."""

    name = "power_threshold"

    def __init__(self, threshold: int = 50_000) -> None:
        self.threshold = threshold

    def choose(self, options: AttackOptions, state: Any) -> str:
        pp, np_ = options.prime.power, options.nonprime.power
        diff = abs(pp - np_)
        if diff > self.threshold:
            choice = stronger(options)
            logger.info("Attack: prime=%d nonprime=%d diff=%d > %d -> stronger -> %s", pp, np_, diff, self.threshold, choice)
        else:
            choice = weaker(options)
            logger.info("Attack: prime=%d nonprime=%d diff=%d <= %d -> weaker -> %s", pp, np_, diff, self.threshold, choice)
        return choice


class ElementalPriorityStrategy(AttackStrategy):
    """Always hit a formation with a priority defender type, in priority order.

    When neither formation qualifies, alternate between the stronger and the
    weaker one; ``state.alt_pick_stronger`` flips on every such choice.
    """

    name = "elemental_priority"

    def __init__(self, priority_types: Sequence[str] = ("fire", "neutral")) -> None:
        self.priority_types = tuple(priority_types)

    def choose(self, options: AttackOptions, state: Any) -> str:
        prime_type = options.prime.defender_type
        nonprime_type = options.nonprime.defender_type
        for wanted in self.priority_types:
            if prime_type == wanted:
                logger.info("Attack: prime is %s -> %s", wanted, PRIME)
                return PRIME
            if nonprime_type == wanted:
                logger.info("Attack: nonprime is %s -> %s", wanted, NONPRIME)
                return NONPRIME

        pick_stronger = state.alt_pick_stronger
        state.alt_pick_stronger = not pick_stronger
        choice = stronger(options) if pick_stronger else weaker(options)
        logger.info(
            "Attack: %s vs %s -> %s (alt) -> %s",
            prime_type,
            nonprime_type,
            "stronger" if pick_stronger else "weaker",
            choice,
        )
        return choice


class AvoidHeroesStrategy(AttackStrategy):
    """Skip the formation fielding an avoided hero; otherwise decide by power gap."""

    name = "avoid_heroes"

    def __init__(self, avoid_hero_ids: Iterable[Any] = (), threshold: int = 50_000) -> None:
        self.avoid_hero_ids = frozenset(avoid_hero_ids)
        self.fallback = PowerThresholdStrategy(threshold)

    def choose(self, options: AttackOptions, state: Any) -> str:
        prime_hit = bool(self.avoid_hero_ids & options.prime.hero_ids)
        nonprime_hit = bool(self.avoid_hero_ids & options.nonprime.hero_ids)
        if prime_hit and not nonprime_hit:
            logger.info("Avoiding prime -> %s", NONPRIME)
            return NONPRIME
        if nonprime_hit and not prime_hit:
            logger.info("Avoiding nonprime -> %s", PRIME)
            return PRIME
        return self.fallback.choose(options, state)


STRATEGIES: Dict[str, Type[AttackStrategy]] = {
    PowerThresholdStrategy.name: PowerThresholdStrategy,
    ElementalPriorityStrategy.name: ElementalPriorityStrategy,
    AvoidHeroesStrategy.name: AvoidHeroesStrategy,
}

ALIASES = {"auto": ElementalPriorityStrategy.name}


def build_strategy(name: str, config: Mapping[str, Any]) -> AttackStrategy:
    """Instantiate the strategy ``name`` with its settings from a dungeon config."""
    key = ALIASES.get(name, name)
    threshold = int(config.get("attack_power_threshold", 50_000))
    if key == PowerThresholdStrategy.name:
        return PowerThresholdStrategy(threshold)
    if key == ElementalPriorityStrategy.name:
        return ElementalPriorityStrategy(config.get("priority_defender_types") or ("fire", "neutral"))
    if key == AvoidHeroesStrategy.name:
        return AvoidHeroesStrategy(config.get("avoid_hero_ids") or (), threshold)
    raise ValueError(f"Unknown attack strategy: {name!r} (known: {', '.join(sorted(STRATEGIES))})")
