"""プロジェクト設定スナップショット"""

from __future__ import annotations

import json
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

import structlog
from pydantic import ValidationError

from .condition_tree import ConditionNode, parse_condition_tree
from .conditions import parse_leaf_condition
from .datafile import (
    Attribute,
    Datafile,
    Experiment,
    FeatureFlag,
    Group,
    Holdout,
    Rollout,
)
from .exceptions import DecisionError, DecisionErrorCodes

logger = structlog.stdlib.get_logger(__name__)


@dataclass(frozen=True)
class ParsedAudience:
    """条件ツリーをパース済みのオーディエンス。"""

    id: str
    name: str
    conditions: ConditionNode | None


@dataclass(frozen=True)
class ProjectConfig:
    """判定に使う不変の設定スナップショット。"""

    datafile: Datafile
    audiences: Mapping[str, ParsedAudience]
    experiment_id_map: Mapping[str, Experiment]
    experiment_key_map: Mapping[str, Experiment]
    group_id_map: Mapping[str, Group]
    rollout_id_map: Mapping[str, Rollout]
    feature_key_map: Mapping[str, FeatureFlag]
    attribute_key_map: Mapping[str, Attribute]
    attribute_id_map: Mapping[str, Attribute]
    audience_conditions: Mapping[str, ConditionNode | None]

    @property
    def revision(self) -> str:
        return self.datafile.revision

    @classmethod
    def from_datafile(cls, datafile: Datafile) -> ProjectConfig:
        """検証済みのデータファイルから索引を構築する。"""
        audiences: dict[str, ParsedAudience] = {}
        for audience in [*datafile.audiences, *datafile.typed_audiences]:
            audiences[audience.id] = ParsedAudience(
                id=audience.id,
                name=audience.name,
                conditions=_parse_audience_conditions(audience.conditions),
            )

        experiments: list[Experiment] = list(datafile.experiments)
        for group in datafile.groups:
            experiments.extend(
                experiment.model_copy(update={"group_id": group.id})
                for experiment in group.experiments
            )
        rules = [rule for rollout in datafile.rollouts for rule in rollout.experiments]

        audience_conditions: dict[str, ConditionNode | None] = {}
        for entity in [*experiments, *rules, *datafile.holdouts]:
            audience_conditions[entity.id] = _parse_entity_conditions(entity)

        return cls(
            datafile=datafile,
            audiences=MappingProxyType(audiences),
            experiment_id_map=MappingProxyType({e.id: e for e in [*experiments, *rules]}),
            experiment_key_map=MappingProxyType({e.key: e for e in [*experiments, *rules]}),
            group_id_map=MappingProxyType({g.id: g for g in datafile.groups}),
            rollout_id_map=MappingProxyType({r.id: r for r in datafile.rollouts}),
            feature_key_map=MappingProxyType({f.key: f for f in datafile.feature_flags}),
            attribute_key_map=MappingProxyType({a.key: a for a in datafile.attributes}),
            attribute_id_map=MappingProxyType({a.id: a for a in datafile.attributes}),
            audience_conditions=MappingProxyType(audience_conditions),
        )

    def get_feature_flag(self, flag_key: str) -> FeatureFlag | None:
        return self.feature_key_map.get(flag_key)

    def get_experiment(self, experiment_id: str) -> Experiment | None:
        return self.experiment_id_map.get(experiment_id)

    def get_experiment_by_key(self, experiment_key: str) -> Experiment | None:
        return self.experiment_key_map.get(experiment_key)

    def get_group(self, group_id: str) -> Group | None:
        return self.group_id_map.get(group_id)

    def get_rollout(self, rollout_id: str) -> Rollout | None:
        return self.rollout_id_map.get(rollout_id)

    def get_audience_conditions(self, entity_id: str) -> ConditionNode | None:
        """実験・ルール・ホールドアウトのオーディエンス条件を返す。None は全員対象。"""
        return self.audience_conditions.get(entity_id)

    def get_holdouts_for_flag(self, flag_key: str) -> list[Holdout]:
        """フラグに適用されるホールドアウトを評価順に返す。

        グローバルなホールドアウトを宣言順に並べ、その後にフラグを
        明示的に含むホールドアウトを宣言順に並べる。
        """
        applicable = [h for h in self.datafile.holdouts if h.applies_to(flag_key)]
        return [h for h in applicable if h.is_global] + [
            h for h in applicable if not h.is_global
        ]

    def get_flag_rules(self, flag: FeatureFlag) -> list[Experiment]:
        """フラグの実験ルールとロールアウトルールを順に返す。"""
        rules = [
            experiment
            for experiment_id in flag.experiment_ids
            if (experiment := self.get_experiment(experiment_id)) is not None
        ]
        rollout = self.get_rollout(flag.rollout_id) if flag.rollout_id else None
        if rollout is not None:
            rules.extend(rollout.experiments)
        return rules


def _parse_audience_conditions(raw: Any) -> ConditionNode | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            # 文字列のまま葉として保持し、評価時に UNKNOWN となる
            logger.warning("audience_conditions_unparseable", conditions=raw)
    return parse_condition_tree(raw, parse_leaf_condition)


def _parse_entity_conditions(entity: Experiment) -> ConditionNode | None:
    raw = entity.audience_conditions
    if raw is None:
        raw = entity.audience_ids
    if isinstance(raw, list) and not raw:
        return None
    return parse_condition_tree(raw)


def create_project_config(datafile: Mapping[str, Any] | str | bytes) -> ProjectConfig:
    """生のデータファイル（JSON 文字列または辞書）から ProjectConfig を作る。"""
    if isinstance(datafile, (str, bytes)):
        try:
            datafile = json.loads(datafile)
        except ValueError as e:
            raise DecisionError(
                code=DecisionErrorCodes.PARSE_DATAFILE,
                message="Failed to parse datafile JSON",
                cause=e,
            ) from e
    if not isinstance(datafile, Mapping):
        raise DecisionError(
            code=DecisionErrorCodes.INVALID_DATAFILE,
            message=f"Datafile must be a JSON object, got {type(datafile).__name__}",
        )
    try:
        validated = Datafile.model_validate(datafile)
    except ValidationError as e:
        raise DecisionError(
            code=DecisionErrorCodes.INVALID_DATAFILE,
            message=f"Datafile validation failed: {e}",
            cause=e,
        ) from e
    return ProjectConfig.from_datafile(validated)
