"""判定エンジンの設定モデル"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field

from .decision import DecideOption


class RolloutFallthrough(StrEnum):
    """ロールアウトでオーディエンス一致後にバケット外れとなった場合の扱い。"""

    EVERYONE_ELSE = "everyone_else"
    NEXT_RULE = "next_rule"
    STOP = "stop"


class DecisionSection(BaseModel):
    rollout_fallthrough: RolloutFallthrough = RolloutFallthrough.EVERYONE_ELSE
    default_decide_options: list[DecideOption] = Field(default_factory=list)


class LogSection(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "json"


class DecisionSettings(BaseModel):
    decision: DecisionSection = Field(default_factory=DecisionSection)
    log: LogSection = Field(default_factory=LogSection)
