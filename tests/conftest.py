"""テスト用データファイル"""

from __future__ import annotations

import copy
from typing import Any

import pytest
from k1s0_decision import ProjectConfig, create_project_config

ADULTS = '["and", ["or", {"name": "age", "type": "custom_attribute", "match": "ge", "value": 18}]]'


def _rule(
    rule_id: str,
    key: str,
    variations: list[tuple[str, str, bool]],
    allocation: list[tuple[str, int]],
    audience_ids: list[str] | None = None,
    status: str = "Running",
    **extra: Any,
) -> dict[str, Any]:
    return {
        "id": rule_id,
        "key": key,
        "status": status,
        "audienceIds": audience_ids or [],
        "variations": [
            {"id": vid, "key": vkey, "featureEnabled": enabled} for vid, vkey, enabled in variations
        ],
        "trafficAllocation": [
            {"entityId": entity_id, "endOfRange": end} for entity_id, end in allocation
        ],
        **extra,
    }


def build_datafile() -> dict[str, Any]:
    """バケッティング結果が既知の値になるよう組んだデータファイル。

    ppid1 / ppid2 / ppid3 と実験 1886780721 のバケット値は 5254 / 4299 / 5439、
    ppid2 とグループ 1886780722 のバケット値は 2434。
    """
    return {
        "version": "4",
        "revision": "42",
        "projectId": "p1",
        "attributes": [
            {"id": "a1", "key": "age"},
            {"id": "a2", "key": "browser"},
        ],
        "audiences": [
            {"id": "1001", "name": "adults", "conditions": ADULTS},
            {"id": "1002", "name": "chrome (legacy)", "conditions": "[\"or\"]"},
        ],
        "typedAudiences": [
            {
                "id": "1002",
                "name": "chrome",
                "conditions": [
                    "and",
                    ["or", {"name": "browser", "type": "custom_attribute", "match": "exact", "value": "chrome"}],
                ],
            },
        ],
        "experiments": [
            _rule(
                "1886780721",
                "ab_test",
                [("2001", "control", False), ("2002", "treatment", True)],
                [("2001", 5000), ("2002", 10000)],
                audienceConditions=["or", "1001"],
                forcedVariations={"vip_user": "control"},
            ),
            _rule(
                "3001",
                "paused_test",
                [("3101", "paused_on", True)],
                [("3101", 10000)],
                status="Paused",
            ),
        ],
        "groups": [
            {
                "id": "1886780722",
                "policy": "random",
                "trafficAllocation": [
                    {"entityId": "4001", "endOfRange": 3000},
                    {"entityId": "4002", "endOfRange": 10000},
                ],
                "experiments": [
                    _rule("4001", "group_exp_a", [("4101", "a_on", True)], [("4101", 10000)]),
                    _rule("4002", "group_exp_b", [("4201", "b_on", True)], [("4201", 10000)]),
                ],
            }
        ],
        "rollouts": [
            {
                "id": "5001",
                "experiments": [
                    _rule("5101", "adults_rule", [("5111", "on", True)], [("5111", 10000)], ["1001"]),
                    _rule("5102", "everyone_else", [("5112", "off", False)], [("5112", 10000)]),
                ],
            },
            {
                "id": "6001",
                "experiments": [
                    _rule("6101", "chrome_miss", [("6111", "chrome_on", True)], [], ["1002"]),
                    _rule("6102", "adults_rule_2", [("6112", "adult_on", True)], [("6112", 10000)], ["1001"]),
                    _rule("6103", "fallthrough_everyone_else", [("6113", "everyone", True)], [("6113", 10000)]),
                ],
            },
        ],
        "featureFlags": [
            {"id": "7001", "key": "checkout", "experimentIds": ["1886780721"], "rolloutId": "5001"},
            {"id": "7002", "key": "grouped", "experimentIds": ["4001", "4002"], "rolloutId": ""},
            {"id": "7003", "key": "fallthrough", "experimentIds": [], "rolloutId": "6001"},
            {"id": "7004", "key": "paused", "experimentIds": ["3001"], "rolloutId": "5001"},
            {"id": "7005", "key": "held", "experimentIds": [], "rolloutId": "5001"},
        ],
        "holdouts": [
            {
                "id": "8002",
                "key": "draft_holdout",
                "status": "Draft",
                "variations": [{"id": "$opt_dummy_variation_id", "key": "off", "featureEnabled": False}],
                "trafficAllocation": [{"entityId": "$opt_dummy_variation_id", "endOfRange": 10000}],
            },
            {
                "id": "8001",
                "key": "held_holdout",
                "status": "Running",
                "audienceConditions": ["or", "1001"],
                "includeFlags": ["held"],
                "variations": [{"id": "$opt_dummy_variation_id", "key": "off", "featureEnabled": False}],
                "trafficAllocation": [{"entityId": "$opt_dummy_variation_id", "endOfRange": 10000}],
            },
        ],
    }


@pytest.fixture
def datafile() -> dict[str, Any]:
    return build_datafile()


@pytest.fixture
def config(datafile: dict[str, Any]) -> ProjectConfig:
    return create_project_config(copy.deepcopy(datafile))
