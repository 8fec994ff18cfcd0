"""カスタム属性条件（葉）の評価"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping

from .condition_tree import Tristate
from .semver import compare_version

MAX_SAFE_INTEGER = 2**53


class ConditionType(Enum):
    """葉条件の種別。"""

    CUSTOM_ATTRIBUTE = "custom_attribute"
    UNKNOWN = "unknown"

    @classmethod
    def from_token(cls, token: Any) -> ConditionType:
        if token == cls.CUSTOM_ATTRIBUTE.value:
            return cls.CUSTOM_ATTRIBUTE
        return cls.UNKNOWN


class MatchType(Enum):
    """葉条件のマッチ種別。"""

    EXACT = "exact"
    EXISTS = "exists"
    SUBSTRING = "substring"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"
    SEMVER_EQ = "semver_eq"
    SEMVER_GT = "semver_gt"
    SEMVER_GE = "semver_ge"
    SEMVER_LT = "semver_lt"
    SEMVER_LE = "semver_le"
    UNKNOWN = "unknown"

    @classmethod
    def from_token(cls, token: Any) -> MatchType:
        """match 指定を解決する。未指定は exact、未知の値は UNKNOWN。"""
        if token is None:
            return cls.EXACT
        if not isinstance(token, str) or token == cls.UNKNOWN.value:
            return cls.UNKNOWN
        try:
            return cls(token)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class LeafCondition:
    """パース済みの葉条件。"""

    name: str | None
    type: ConditionType
    match: MatchType
    value: Any = None
    source: str = ""


def parse_leaf_condition(raw: Any) -> LeafCondition:
    """生の葉条件を LeafCondition に変換する。不正な形は UNKNOWN 種別になる。"""
    source = _describe(raw)
    if not isinstance(raw, Mapping):
        return LeafCondition(
            name=None,
            type=ConditionType.UNKNOWN,
            match=MatchType.UNKNOWN,
            source=source,
        )
    name = raw.get("name")
    return LeafCondition(
        name=name if isinstance(name, str) else None,
        type=ConditionType.from_token(raw.get("type")),
        match=MatchType.from_token(raw.get("match")),
        value=raw.get("value"),
        source=source,
    )


def _describe(raw: Any) -> str:
    try:
        return json.dumps(raw, sort_keys=True)
    except (TypeError, ValueError):
        return repr(raw)


def _is_finite_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _is_safe_number(value: Any) -> bool:
    return _is_finite_number(value) and abs(value) <= MAX_SAFE_INTEGER


def _category(value: Any) -> str | None:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (int, float)):
        return "number"
    return None


def _exact(condition_value: Any, user_value: Any) -> Tristate:
    category = _category(condition_value)
    if category is None or category != _category(user_value):
        return Tristate.UNKNOWN
    if category == "number" and not (
        _is_safe_number(condition_value) and _is_safe_number(user_value)
    ):
        return Tristate.UNKNOWN
    return Tristate.of(condition_value == user_value)


def _substring(condition_value: Any, user_value: Any) -> Tristate:
    if not isinstance(condition_value, str) or not isinstance(user_value, str):
        return Tristate.UNKNOWN
    return Tristate.of(condition_value in user_value)


def _numeric(compare: Callable[[float, float], bool]) -> Callable[[Any, Any], Tristate]:
    def matcher(condition_value: Any, user_value: Any) -> Tristate:
        if not (_is_safe_number(condition_value) and _is_safe_number(user_value)):
            return Tristate.UNKNOWN
        return Tristate.of(compare(user_value, condition_value))

    return matcher


def _semver(accept: Callable[[int], bool]) -> Callable[[Any, Any], Tristate]:
    def matcher(condition_value: Any, user_value: Any) -> Tristate:
        if not isinstance(condition_value, str) or not isinstance(user_value, str):
            return Tristate.UNKNOWN
        result = compare_version(condition_value, user_value)
        if result is None:
            return Tristate.UNKNOWN
        return Tristate.of(accept(result))

    return matcher


_MATCHERS: dict[MatchType, Callable[[Any, Any], Tristate]] = {
    MatchType.EXACT: _exact,
    MatchType.SUBSTRING: _substring,
    MatchType.GT: _numeric(lambda user, cond: user > cond),
    MatchType.GE: _numeric(lambda user, cond: user >= cond),
    MatchType.LT: _numeric(lambda user, cond: user < cond),
    MatchType.LE: _numeric(lambda user, cond: user <= cond),
    MatchType.SEMVER_EQ: _semver(lambda result: result == 0),
    MatchType.SEMVER_GT: _semver(lambda result: result > 0),
    MatchType.SEMVER_GE: _semver(lambda result: result >= 0),
    MatchType.SEMVER_LT: _semver(lambda result: result < 0),
    MatchType.SEMVER_LE: _semver(lambda result: result <= 0),
}


def match_leaf(condition: LeafCondition, attributes: Mapping[str, Any]) -> Tristate:
    """葉条件をユーザー属性に対して評価する。"""
    if condition.type is ConditionType.UNKNOWN or condition.match is MatchType.UNKNOWN:
        return Tristate.UNKNOWN
    if condition.name is None:
        return Tristate.UNKNOWN

    if condition.match is MatchType.EXISTS:
        return Tristate.of(attributes.get(condition.name) is not None)

    if condition.name not in attributes:
        return Tristate.UNKNOWN
    user_value = attributes[condition.name]
    if user_value is None:
        return Tristate.UNKNOWN
    return _MATCHERS[condition.match](condition.value, user_value)
