import json
import unittest

from hwbot.network.envelope import decode_exchange
from hwbot.network.events import (
    DungeonBattleEnded,
    DungeonBattleStarted,
    DungeonFloorObserved,
    DungeonInfo,
    ExpeditionStatus,
    TowerReward,
    Unrecognized,
    expedition_rewards_available,
)

FLOOR = {
    "userData": [
        {"power": 120000, "defenderType": "fire", "team": [{"id": 1}, {"id": 4}]},
        {"power": 95000, "defenderType": "water", "team": [{"id": 7}]},
    ]
}


def envelope(calls):
    return json.dumps({"calls": calls})


def results(*entries):
    return json.dumps({"results": [{"ident": ident, "result": {"response": response}} for ident, response in entries]})


class DecodeExchangeTests(unittest.TestCase):
    def test_results_are_matched_by_ident_not_position(self) -> None:
        body = envelope([
            {"name": "dungeonStartBattle", "args": {}, "ident": "body"},
            {"name": "dungeonGetInfo", "args": {}, "ident": "group_1_body"},
        ])
        text = results(("group_1_body", {"floorNumber": 14, "floor": FLOOR}), ("body", {}))

        events = decode_exchange(body, text)

        self.assertEqual(
            [type(e) for e in events],
            [DungeonFloorObserved, DungeonBattleStarted, DungeonInfo],
        )
        info = events[2]
        self.assertEqual(info.floor_number, 14)
        self.assertEqual(info.options.prime.power, 120000)
        self.assertEqual(info.options.prime.defender_type, "fire")
        self.assertEqual(info.options.prime.hero_ids, frozenset({1, 4}))
        self.assertEqual(info.options.nonprime.defender_type, "water")
        self.assertEqual(events[0].floor_number, 14)

    def test_bytes_body(self) -> None:
        body = envelope([{"name": "towerNextChest", "args": {}, "ident": "body"}]).encode("utf-8")
        events = decode_exchange(body, results(("body", {})))
        self.assertEqual([e.name for e in events], ["towerNextChest"])

    def test_malformed_traffic_yields_nothing(self) -> None:
        self.assertEqual(decode_exchange(None, "{}"), [])
        self.assertEqual(decode_exchange("not json", "{}"), [])
        self.assertEqual(decode_exchange(json.dumps({"foo": 1}), "{}"), [])
        body = envelope([{"name": "dungeonGetInfo", "args": {}, "ident": "body"}])
        self.assertEqual(decode_exchange(body, "<html>502</html>"), [])
        self.assertEqual(decode_exchange(b"\xff\xfe", "{}"), [])

    def test_win_flag(self) -> None:
        lost = envelope([{"name": "dungeonEndBattle", "args": {"result": {"win": False}}, "ident": "body"}])
        won = envelope([{"name": "dungeonEndBattle", "args": {"result": {"win": True}}, "ident": "body"}])
        missing = envelope([{"name": "dungeonEndBattle", "args": {}, "ident": "body"}])
        text = results(("body", {"dungeon": {"floor": FLOOR}}))

        self.assertFalse(decode_exchange(lost, text)[-1].won)
        self.assertTrue(decode_exchange(won, text)[-1].won)
        ended = decode_exchange(missing, text)[-1]
        self.assertIsInstance(ended, DungeonBattleEnded)
        self.assertTrue(ended.won)
        self.assertEqual(ended.next_options.nonprime.power, 95000)

    def test_call_without_result_is_still_classified(self) -> None:
        body = envelope([{"name": "dungeonSaveProgress", "args": {}, "ident": "body"}])
        events = decode_exchange(body, json.dumps({"results": []}))
        self.assertEqual([e.name for e in events], ["dungeonSaveProgress"])

    def test_other_calls(self) -> None:
        body = envelope([
            {"name": "userGetInfo", "args": {"a": 1}, "ident": "body"},
            {"name": "tower_farmSkullReward", "args": {}, "ident": "group_1_body"},
            {"name": "expeditionGet", "args": {}, "ident": "group_2_body"},
        ])
        text = results(
            ("body", {"level": 90}),
            ("group_1_body", {"coin": 5}),
            ("group_2_body", {"1": {"status": 2}, "2": {"status": 1}}),
        )
        unknown, reward, expedition = decode_exchange(body, text)
        self.assertIsInstance(unknown, Unrecognized)
        self.assertEqual(unknown.args, {"a": 1})
        self.assertIsInstance(reward, TowerReward)
        self.assertEqual(reward.data, {"coin": 5})
        self.assertIsInstance(expedition, ExpeditionStatus)
        self.assertTrue(expedition.rewards_available)


class ExpeditionTests(unittest.TestCase):
    def test_rewards_available_only_for_finished_entries(self) -> None:
        self.assertTrue(expedition_rewards_available([{"status": 1}, {"status": 2}]))
        self.assertFalse(expedition_rewards_available({"1": {"status": 1}, "2": {"status": 3}}))
        self.assertFalse(expedition_rewards_available(None))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
