"""オーディエンス評価"""

from __future__ import annotations

from typing import Any, Mapping

import structlog

from . import messages
from .condition_tree import And, ConditionNode, Leaf, Not, Or, Tristate, evaluate
from .conditions import LeafCondition, match_leaf
from .decision import DecisionResponse
from .project_config import ParsedAudience

logger = structlog.stdlib.get_logger(__name__)


class AudienceEvaluator:
    """オーディエンス ID の条件ツリーを評価し、理由トレースを残す。"""

    def evaluate(
        self,
        audience_conditions: ConditionNode | None,
        audiences: Mapping[str, ParsedAudience],
        attributes: Mapping[str, Any],
        entity_kind: str = "experiment",
        entity_key: str = "",
    ) -> DecisionResponse[Tristate]:
        """オーディエンス条件を評価する。条件がなければ TRUE。"""
        reasons: list[str] = []
        if audience_conditions is None:
            reasons.append(
                messages.AUDIENCE_EVALUATION_RESULT_COMBINED.format(
                    entity_kind, entity_key, Tristate.TRUE.value
                )
            )
            return DecisionResponse.of(Tristate.TRUE, reasons)

        reasons.append(
            messages.EVALUATING_AUDIENCES_COMBINED.format(
                entity_kind, entity_key, _describe(audience_conditions)
            )
        )

        def evaluate_audience(audience_id: Any) -> Tristate:
            audience = audiences.get(audience_id) if isinstance(audience_id, str) else None
            if audience is None:
                reasons.append(messages.AUDIENCE_NOT_FOUND.format(audience_id))
                return Tristate.UNKNOWN
            result = self._evaluate_audience(audience, attributes, reasons)
            reasons.append(messages.AUDIENCE_EVALUATION_RESULT.format(audience.id, result.value))
            return result

        result = evaluate(audience_conditions, evaluate_audience)
        reasons.append(
            messages.AUDIENCE_EVALUATION_RESULT_COMBINED.format(entity_kind, entity_key, result.value)
        )
        logger.debug(
            "audience_evaluated",
            entity_kind=entity_kind,
            entity_key=entity_key,
            result=result.value,
        )
        return DecisionResponse.of(result, reasons)

    def _evaluate_audience(
        self,
        audience: ParsedAudience,
        attributes: Mapping[str, Any],
        reasons: list[str],
    ) -> Tristate:
        if audience.conditions is None:
            return Tristate.UNKNOWN

        def evaluate_leaf(condition: LeafCondition) -> Tristate:
            result = match_leaf(condition, attributes)
            reasons.append(
                messages.CONDITION_EVALUATION_RESULT.format(
                    condition.source, audience.id, result.value
                )
            )
            return result

        return evaluate(audience.conditions, evaluate_leaf)


def _describe(node: ConditionNode) -> str:
    """条件ツリーを理由トレース用の文字列にする。"""
    if isinstance(node, Leaf):
        return f'"{node.value}"'
    operator = {And: "and", Or: "or", Not: "not"}[type(node)]
    return "[" + ", ".join([f'"{operator}"', *(_describe(o) for o in node.operands)]) + "]"
