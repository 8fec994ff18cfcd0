"""三値論理の条件ツリー評価"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

L = TypeVar("L")


class Tristate(Enum):
    """三値論理の評価結果。UNKNOWN は判定不能を表す。"""

    TRUE = "TRUE"
    FALSE = "FALSE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def of(cls, value: bool | None) -> Tristate:
        """bool / None から Tristate を作る。"""
        if value is None:
            return cls.UNKNOWN
        return cls.TRUE if value else cls.FALSE

    def to_optional(self) -> bool | None:
        """bool / None に戻す。"""
        if self is Tristate.UNKNOWN:
            return None
        return self is Tristate.TRUE

    def __invert__(self) -> Tristate:
        if self is Tristate.UNKNOWN:
            return Tristate.UNKNOWN
        return Tristate.FALSE if self is Tristate.TRUE else Tristate.TRUE


class Operator(Enum):
    """条件ツリーの論理演算子。"""

    AND = "and"
    OR = "or"
    NOT = "not"

    @classmethod
    def from_token(cls, token: Any) -> Operator | None:
        """配列先頭のトークンを演算子に変換する。演算子でなければ None。"""
        if not isinstance(token, str):
            return None
        try:
            return cls(token)
        except ValueError:
            return None


@dataclass(frozen=True)
class Leaf(Generic[L]):
    """葉ノード。"""

    value: L


@dataclass(frozen=True)
class And:
    """AND ノード。"""

    operands: tuple[ConditionNode, ...] = ()


@dataclass(frozen=True)
class Or:
    """OR ノード。"""

    operands: tuple[ConditionNode, ...] = ()


@dataclass(frozen=True)
class Not:
    """NOT ノード。評価されるのは先頭のオペランドのみ。"""

    operands: tuple[ConditionNode, ...] = ()


ConditionNode = Leaf[Any] | And | Or | Not

_NODE_TYPES: dict[Operator, type[And] | type[Or] | type[Not]] = {
    Operator.AND: And,
    Operator.OR: Or,
    Operator.NOT: Not,
}


def _identity(raw: Any) -> Any:
    return raw


def parse_condition_tree(
    raw: Any, leaf_factory: Callable[[Any], Any] = _identity
) -> ConditionNode:
    """生の配列表現を条件ツリーに変換する。例外は送出しない。

    配列の先頭が and / or / not 以外（葉や空配列を含む）の場合、
    配列全体を暗黙の OR として扱う。
    """
    if not isinstance(raw, list):
        return Leaf(leaf_factory(raw))
    operator = Operator.from_token(raw[0]) if raw else None
    if operator is None:
        operator, rest = Operator.OR, raw
    else:
        rest = raw[1:]
    operands = tuple(parse_condition_tree(item, leaf_factory) for item in rest)
    return _NODE_TYPES[operator](operands)


def evaluate(node: ConditionNode, leaf_evaluator: Callable[[Any], Tristate]) -> Tristate:
    """条件ツリーを三値論理で評価する。"""
    if isinstance(node, Leaf):
        return leaf_evaluator(node.value)
    if isinstance(node, And):
        return _evaluate_and(node.operands, leaf_evaluator)
    if isinstance(node, Or):
        return _evaluate_or(node.operands, leaf_evaluator)
    if not node.operands:
        return Tristate.UNKNOWN
    return ~evaluate(node.operands[0], leaf_evaluator)


def _evaluate_and(
    operands: tuple[ConditionNode, ...], leaf_evaluator: Callable[[Any], Tristate]
) -> Tristate:
    saw_unknown = False
    for operand in operands:
        result = evaluate(operand, leaf_evaluator)
        if result is Tristate.FALSE:
            return Tristate.FALSE
        if result is Tristate.UNKNOWN:
            saw_unknown = True
    return Tristate.UNKNOWN if saw_unknown else Tristate.TRUE


def _evaluate_or(
    operands: tuple[ConditionNode, ...], leaf_evaluator: Callable[[Any], Tristate]
) -> Tristate:
    saw_unknown = False
    for operand in operands:
        result = evaluate(operand, leaf_evaluator)
        if result is Tristate.TRUE:
            return Tristate.TRUE
        if result is Tristate.UNKNOWN:
            saw_unknown = True
    return Tristate.UNKNOWN if saw_unknown else Tristate.FALSE
