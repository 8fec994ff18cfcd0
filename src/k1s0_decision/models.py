"""クライアント向けデータモデル"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .decision import DecisionSource


@dataclass
class EvaluationContext:
    """フラグ評価コンテキスト。"""

    user_id: str
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class EvaluationResult:
    """フラグ評価結果。"""

    flag_key: str
    enabled: bool
    variation_key: str | None = None
    rule_key: str | None = None
    source: DecisionSource = DecisionSource.DEFAULT
    reasons: list[str] = field(default_factory=list)
