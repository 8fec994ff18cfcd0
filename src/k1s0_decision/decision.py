"""判定結果のデータモデル"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

T = TypeVar("T")


class DecisionSource(StrEnum):
    """判定の出所。"""

    HOLDOUT = "holdout"
    EXPERIMENT = "experiment"
    ROLLOUT = "rollout"
    DEFAULT = "default"


class DecideOption(StrEnum):
    """decide 呼び出しのオプション。"""

    IGNORE_USER_PROFILE_SERVICE = "IGNORE_USER_PROFILE_SERVICE"
    INCLUDE_REASONS = "INCLUDE_REASONS"
    ENABLED_FLAGS_ONLY = "ENABLED_FLAGS_ONLY"


@dataclass(frozen=True)
class Decision:
    """フラグに対する判定。

    persist_to_profile はバケッティングで新たに得た実験の判定のときのみ True。
    """

    flag_key: str
    source: DecisionSource
    enabled: bool = False
    variation_id: str | None = None
    variation_key: str | None = None
    rule_id: str | None = None
    rule_key: str | None = None
    persist_to_profile: bool = False


@dataclass(frozen=True)
class DecisionResponse(Generic[T]):
    """判定値と理由トレースの組。"""

    result: T | None
    _reasons: tuple[str, ...] = ()

    @classmethod
    def of(cls, result: T | None, reasons: list[str]) -> DecisionResponse[T]:
        return cls(result, tuple(reasons))

    @property
    def reasons(self) -> list[str]:
        return list(self._reasons)

    def get_result(self) -> T | None:
        return self.result

    def get_reasons(self) -> list[str]:
        return list(self._reasons)
