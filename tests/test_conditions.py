"""カスタム属性条件のユニットテスト"""

import math
from typing import Any

import pytest
from k1s0_decision import ConditionType, MatchType, Tristate, match_leaf, parse_leaf_condition

T, F, U = Tristate.TRUE, Tristate.FALSE, Tristate.UNKNOWN


def leaf(match: str | None, value: Any, name: str = "attr") -> dict[str, Any]:
    raw: dict[str, Any] = {"name": name, "type": "custom_attribute", "value": value}
    if match is not None:
        raw["match"] = match
    return raw


def check(raw: dict[str, Any], attributes: dict[str, Any]) -> Tristate:
    return match_leaf(parse_leaf_condition(raw), attributes)


def test_missing_match_defaults_to_exact() -> None:
    """match 未指定は exact として扱われること。"""
    condition = parse_leaf_condition(leaf(None, "chrome"))
    assert condition.match is MatchType.EXACT
    assert match_leaf(condition, {"attr": "chrome"}) is T


def test_unknown_match_is_unknown_before_missing_attribute() -> None:
    """未知の match は属性の有無に関係なく UNKNOWN となること。"""
    assert check(leaf("regex", "x"), {}) is U
    assert check(leaf("regex", "x"), {"attr": "x"}) is U


def test_unknown_condition_type() -> None:
    """未知の type は UNKNOWN となること。"""
    raw = {"name": "attr", "type": "third_party", "match": "exact", "value": 1}
    assert parse_leaf_condition(raw).type is ConditionType.UNKNOWN
    assert check(raw, {"attr": 1}) is U


def test_non_mapping_leaf_is_unknown() -> None:
    """辞書でない葉は UNKNOWN となること。"""
    assert match_leaf(parse_leaf_condition("garbage"), {}) is U


@pytest.mark.parametrize(
    ("attributes", "expected"),
    [
        ({"attr": "x"}, T),
        ({"attr": 0}, T),
        ({"attr": False}, T),
        ({"attr": None}, F),
        ({}, F),
    ],
)
def test_exists(attributes: dict[str, Any], expected: Tristate) -> None:
    """exists は値が存在し None でない場合のみ TRUE となること。"""
    assert check(leaf("exists", None), attributes) is expected


@pytest.mark.parametrize(
    ("value", "user", "expected"),
    [
        ("chrome", "chrome", T),
        ("chrome", "firefox", F),
        (True, True, T),
        (True, False, F),
        (10, 10.0, T),
        (10, 11, F),
        (True, 1, U),
        (1, True, U),
        ("1", 1, U),
        (10, math.inf, U),
        (10, 2**53 + 2, U),
        ([1], [1], U),
    ],
)
def test_exact(value: Any, user: Any, expected: Tristate) -> None:
    """exact は同じ型同士でのみ比較されること。"""
    assert check(leaf("exact", value), {"attr": user}) is expected


def test_missing_or_none_attribute_is_unknown() -> None:
    """属性が無い、または None の場合は UNKNOWN となること。"""
    assert check(leaf("exact", "x"), {}) is U
    assert check(leaf("gt", 1), {"attr": None}) is U


@pytest.mark.parametrize(
    ("value", "user", "expected"),
    [
        ("chr", "chrome", T),
        ("fire", "chrome", F),
        ("1", 10, U),
        (1, "10", U),
    ],
)
def test_substring(value: Any, user: Any, expected: Tristate) -> None:
    """substring は両方が文字列の場合のみ評価されること。"""
    assert check(leaf("substring", value), {"attr": user}) is expected


@pytest.mark.parametrize(
    ("match", "value", "user", "expected"),
    [
        ("gt", 10, 11, T),
        ("gt", 10, 10, F),
        ("ge", 10, 10, T),
        ("lt", 10, 9.5, T),
        ("lt", 10, 10, F),
        ("le", 10, 10, T),
        ("gt", 10, "11", U),
        ("gt", 10, True, U),
        ("gt", 10, math.nan, U),
        ("gt", 10, -math.inf, U),
        ("gt", 2**53 + 2, 1, U),
        ("ge", 2**53, 2**53, T),
    ],
)
def test_numeric(match: str, value: Any, user: Any, expected: Tristate) -> None:
    """数値比較は有限かつ 2^53 以内の数値のみ評価されること。"""
    assert check(leaf(match, value), {"attr": user}) is expected


@pytest.mark.parametrize(
    ("match", "value", "user", "expected"),
    [
        ("semver_eq", "2.0", "2.0.1", T),
        ("semver_gt", "2.0.0", "2.0.1", T),
        ("semver_ge", "2.0.0", "2.0.0", T),
        ("semver_lt", "2.0.0", "1.9.9", T),
        ("semver_le", "2.0.0", "2.0.1", F),
        ("semver_eq", "2.0.0", "2.0.0.0", U),
        ("semver_eq", "2.0.0", 2, U),
    ],
)
def test_semver(match: str, value: Any, user: Any, expected: Tristate) -> None:
    """semver 系の match がバージョン比較で評価されること。"""
    assert check(leaf(match, value), {"attr": user}) is expected
