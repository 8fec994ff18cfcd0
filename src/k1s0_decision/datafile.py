"""データファイルのスキーマ定義"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ExperimentStatus(StrEnum):
    """実験・ホールドアウトのステータス。"""

    RUNNING = "Running"
    PAUSED = "Paused"
    NOT_STARTED = "Not started"
    LAUNCHED = "Launched"
    ARCHIVED = "Archived"


GROUP_POLICY_RANDOM = "random"


class DatafileModel(BaseModel):
    """データファイル要素の基底モデル。キーは camelCase で受け付ける。"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class TrafficAllocation(DatafileModel):
    """トラフィック割り当ての 1 区間。"""

    entity_id: str
    end_of_range: int = Field(ge=0, le=10000)


def _check_ranges(value: list[TrafficAllocation]) -> list[TrafficAllocation]:
    previous = 0
    for allocation in value:
        if allocation.end_of_range < previous:
            raise ValueError("traffic allocation ranges must be non-decreasing")
        previous = allocation.end_of_range
    return value


class Variation(DatafileModel):
    """バリエーション。"""

    id: str
    key: str
    feature_enabled: bool = False


class Experiment(DatafileModel):
    """実験、またはロールアウトのルール。"""

    id: str
    key: str
    status: str = ExperimentStatus.NOT_STARTED
    audience_ids: list[str] = Field(default_factory=list)
    audience_conditions: Any = None
    variations: list[Variation] = Field(default_factory=list)
    traffic_allocation: list[TrafficAllocation] = Field(default_factory=list)
    forced_variations: dict[str, str] = Field(default_factory=dict)
    group_id: str | None = None

    @field_validator("traffic_allocation")
    @classmethod
    def check_ranges(cls, value: list[TrafficAllocation]) -> list[TrafficAllocation]:
        return _check_ranges(value)

    @property
    def is_running(self) -> bool:
        return self.status == ExperimentStatus.RUNNING

    def get_variation(self, variation_id: str) -> Variation | None:
        for variation in self.variations:
            if variation.id == variation_id:
                return variation
        return None

    def get_variation_by_key(self, variation_key: str) -> Variation | None:
        for variation in self.variations:
            if variation.key == variation_key:
                return variation
        return None


class Group(DatafileModel):
    """相互排他グループ。"""

    id: str
    policy: str = GROUP_POLICY_RANDOM
    experiments: list[Experiment] = Field(default_factory=list)
    traffic_allocation: list[TrafficAllocation] = Field(default_factory=list)

    @field_validator("traffic_allocation")
    @classmethod
    def check_ranges(cls, value: list[TrafficAllocation]) -> list[TrafficAllocation]:
        return _check_ranges(value)


class Rollout(DatafileModel):
    """ロールアウト。最後のルールが Everyone Else。"""

    id: str
    experiments: list[Experiment] = Field(default_factory=list)


class Holdout(Experiment):
    """ホールドアウト。"""

    include_flags: list[str] = Field(default_factory=list)
    exclude_flags: list[str] = Field(default_factory=list)

    @property
    def is_global(self) -> bool:
        return not self.include_flags

    def applies_to(self, flag_key: str) -> bool:
        """このホールドアウトがフラグに適用されるかを返す。"""
        if self.include_flags:
            return flag_key in self.include_flags
        return flag_key not in self.exclude_flags


class FeatureFlag(DatafileModel):
    """フィーチャーフラグ。"""

    id: str
    key: str
    experiment_ids: list[str] = Field(default_factory=list)
    rollout_id: str = ""


class Audience(DatafileModel):
    """オーディエンス。conditions は JSON 文字列または配列。"""

    id: str
    name: str = ""
    conditions: Any = None


class Attribute(DatafileModel):
    """属性定義。"""

    id: str
    key: str


class Datafile(DatafileModel):
    """データファイル全体。"""

    version: str = "4"
    revision: str = ""
    project_id: str = ""
    account_id: str = ""
    attributes: list[Attribute] = Field(default_factory=list)
    audiences: list[Audience] = Field(default_factory=list)
    typed_audiences: list[Audience] = Field(default_factory=list)
    experiments: list[Experiment] = Field(default_factory=list)
    groups: list[Group] = Field(default_factory=list)
    rollouts: list[Rollout] = Field(default_factory=list)
    feature_flags: list[FeatureFlag] = Field(default_factory=list)
    holdouts: list[Holdout] = Field(default_factory=list)
