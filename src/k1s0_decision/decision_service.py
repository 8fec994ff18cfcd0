"""フラグ判定サービス

強制バリエーション、ユーザープロファイル、ホールドアウト、実験、
ロールアウトの順に評価し、最初に得られた判定を返す。
"""

from __future__ import annotations

from typing import Any, Callable, Collection, Iterable, Mapping, Sequence

import structlog

from . import messages
from .audience import AudienceEvaluator
from .bucketer import Allocation, find_bucket, generate_bucket_value, make_bucketing_key
from .condition_tree import Tristate
from .datafile import GROUP_POLICY_RANDOM, Experiment, FeatureFlag, Holdout, Variation
from .decision import DecideOption, Decision, DecisionResponse, DecisionSource
from .project_config import ProjectConfig
from .settings import RolloutFallthrough
from .user_profile import UserProfile

logger = structlog.stdlib.get_logger(__name__)

BUCKETING_ID_ATTRIBUTE = "$opt_bucketing_id"
EXPERIMENT_BUCKET_MAP_ATTRIBUTE = "$opt_experiment_bucket_map"

ForcedVariations = Mapping[str, Mapping[str, str]]
UserProfileLookup = Callable[[str], UserProfile | None]


class DecisionService:
    """フラグ判定サービス。呼び出し間で状態を持たない。"""

    def __init__(
        self,
        rollout_fallthrough: RolloutFallthrough = RolloutFallthrough.EVERYONE_ELSE,
        audience_evaluator: AudienceEvaluator | None = None,
    ) -> None:
        self._rollout_fallthrough = rollout_fallthrough
        self._audience_evaluator = audience_evaluator or AudienceEvaluator()

    def decide(
        self,
        flag_key: str,
        user_id: str,
        attributes: Mapping[str, Any] | None,
        config: ProjectConfig | None,
        forced_variations: ForcedVariations | None = None,
        user_profile_lookup: UserProfileLookup | None = None,
        options: Collection[DecideOption] = (),
    ) -> DecisionResponse[Decision]:
        """ユーザーに対するフラグの判定を返す。

        Raises:
            BucketingError: バケッティング ID が文字列でない場合
        """
        attributes = attributes or {}
        reasons: list[str] = []

        if config is None:
            reasons.append(messages.NO_PROJECT_CONFIG.format(flag_key))
            return DecisionResponse.of(Decision(flag_key, DecisionSource.DEFAULT), reasons)

        flag = config.get_feature_flag(flag_key)
        if flag is None:
            reasons.append(messages.FLAG_KEY_INVALID.format(flag_key))
            return DecisionResponse.of(Decision(flag_key, DecisionSource.DEFAULT), reasons)

        decision = self._get_forced_decision(flag, user_id, config, forced_variations or {}, reasons)
        if decision is None and DecideOption.IGNORE_USER_PROFILE_SERVICE not in options:
            decision = self._get_stored_decision(
                flag, user_id, attributes, config, user_profile_lookup, reasons
            )
        if decision is None:
            bucketing_id = self._get_bucketing_id(user_id, attributes, reasons)
            decision = (
                self._get_holdout_decision(flag, user_id, bucketing_id, attributes, config, reasons)
                or self._get_experiment_decision(
                    flag, user_id, bucketing_id, attributes, config, reasons
                )
                or self._get_rollout_decision(flag, user_id, bucketing_id, attributes, config, reasons)
            )
        if decision is None:
            reasons.append(messages.NO_APPLICABLE_RULE.format(user_id, flag_key))
            decision = Decision(flag_key, DecisionSource.DEFAULT)

        logger.info(
            "flag_decided",
            flag_key=flag_key,
            user_id=user_id,
            source=decision.source.value,
            rule_key=decision.rule_key,
            variation_key=decision.variation_key,
            enabled=decision.enabled,
        )
        return DecisionResponse.of(decision, reasons)

    def decide_for_keys(
        self,
        flag_keys: Iterable[str],
        user_id: str,
        attributes: Mapping[str, Any] | None,
        config: ProjectConfig | None,
        forced_variations: ForcedVariations | None = None,
        user_profile_lookup: UserProfileLookup | None = None,
        options: Collection[DecideOption] = (),
    ) -> dict[str, DecisionResponse[Decision]]:
        """複数フラグをキーの順に判定する。"""
        return {
            flag_key: self.decide(
                flag_key,
                user_id,
                attributes,
                config,
                forced_variations,
                user_profile_lookup,
                options,
            )
            for flag_key in flag_keys
        }

    def _get_bucketing_id(
        self, user_id: str, attributes: Mapping[str, Any], reasons: list[str]
    ) -> str:
        if BUCKETING_ID_ATTRIBUTE not in attributes:
            return user_id
        bucketing_id = attributes[BUCKETING_ID_ATTRIBUTE]
        if isinstance(bucketing_id, str):
            reasons.append(messages.VALID_BUCKETING_ID.format(bucketing_id))
            return bucketing_id
        reasons.append(messages.BUCKETING_ID_NOT_STRING)
        logger.warning("bucketing_id_not_string", user_id=user_id)
        return user_id

    def _bucket(
        self,
        bucketing_id: str,
        entity_id: str,
        allocations: Sequence[Allocation],
        reasons: list[str],
    ) -> str | None:
        bucket_value = generate_bucket_value(make_bucketing_key(bucketing_id, entity_id))
        reasons.append(messages.USER_ASSIGNED_TO_BUCKET.format(bucket_value, bucketing_id))
        return find_bucket(bucket_value, allocations)

    def _audience_matches(
        self,
        config: ProjectConfig,
        entity: Experiment,
        entity_kind: str,
        attributes: Mapping[str, Any],
        reasons: list[str],
    ) -> bool:
        response = self._audience_evaluator.evaluate(
            config.get_audience_conditions(entity.id),
            config.audiences,
            attributes,
            entity_kind,
            entity.key,
        )
        reasons.extend(response.reasons)
        return response.result is Tristate.TRUE

    def _get_forced_decision(
        self,
        flag: FeatureFlag,
        user_id: str,
        config: ProjectConfig,
        forced_variations: ForcedVariations,
        reasons: list[str],
    ) -> Decision | None:
        for rule in config.get_flag_rules(flag):
            variation_key = (forced_variations.get(rule.key) or {}).get(user_id)
            if variation_key is None:
                continue
            is_experiment = rule.id in flag.experiment_ids
            if is_experiment and not rule.is_running:
                reasons.append(messages.EXPERIMENT_NOT_RUNNING.format(rule.key))
                continue
            variation = rule.get_variation_by_key(variation_key)
            if variation is None:
                reasons.append(messages.FORCED_VARIATION_NOT_FOUND.format(variation_key, rule.key))
                continue
            reasons.append(messages.USER_HAS_FORCED_VARIATION.format(variation.key, rule.key, user_id))
            source = DecisionSource.EXPERIMENT if is_experiment else DecisionSource.ROLLOUT
            return _make_decision(flag, rule, variation, source)
        return None

    def _get_stored_decision(
        self,
        flag: FeatureFlag,
        user_id: str,
        attributes: Mapping[str, Any],
        config: ProjectConfig,
        user_profile_lookup: UserProfileLookup | None,
        reasons: list[str],
    ) -> Decision | None:
        profile = UserProfile(user_id=user_id)
        if user_profile_lookup is not None:
            try:
                stored = user_profile_lookup(user_id)
            except Exception as e:
                logger.error("user_profile_lookup_failed", user_id=user_id, error=str(e))
                reasons.append(messages.USER_PROFILE_LOOKUP_ERROR.format(user_id, e))
                stored = None
            if stored is not None:
                if isinstance(stored, UserProfile) and isinstance(stored.experiment_bucket_map, Mapping):
                    profile.experiment_bucket_map.update(stored.experiment_bucket_map)
                else:
                    logger.warning("user_profile_malformed", user_id=user_id, profile_type=type(stored).__name__)
                    reasons.append(messages.USER_PROFILE_MALFORMED.format(user_id))
        attribute_map = attributes.get(EXPERIMENT_BUCKET_MAP_ATTRIBUTE)
        if isinstance(attribute_map, Mapping):
            profile.experiment_bucket_map.update(attribute_map)
        if not profile.experiment_bucket_map:
            return None

        for experiment_id in flag.experiment_ids:
            experiment = config.get_experiment(experiment_id)
            if experiment is None or not experiment.is_running:
                continue
            variation_id = profile.get_variation_id(experiment_id)
            if variation_id is None:
                continue
            variation = experiment.get_variation(variation_id)
            if variation is None:
                reasons.append(
                    messages.SAVED_VARIATION_NOT_FOUND.format(user_id, variation_id, experiment.key)
                )
                continue
            reasons.append(
                messages.RETURNING_STORED_VARIATION.format(variation.key, experiment.key, user_id)
            )
            return _make_decision(flag, experiment, variation, DecisionSource.EXPERIMENT)
        return None

    def _get_holdout_decision(
        self,
        flag: FeatureFlag,
        user_id: str,
        bucketing_id: str,
        attributes: Mapping[str, Any],
        config: ProjectConfig,
        reasons: list[str],
    ) -> Decision | None:
        for holdout in config.get_holdouts_for_flag(flag.key):
            if not holdout.is_running:
                reasons.append(messages.HOLDOUT_NOT_RUNNING.format(holdout.key))
                continue
            if not self._audience_matches(config, holdout, "holdout", attributes, reasons):
                reasons.append(messages.USER_NOT_IN_HOLDOUT_AUDIENCE.format(user_id, holdout.key))
                continue
            variation = _find_variation(
                holdout, self._bucket(bucketing_id, holdout.id, holdout.traffic_allocation, reasons)
            )
            if variation is None:
                reasons.append(messages.USER_NOT_BUCKETED_INTO_HOLDOUT.format(user_id, holdout.key))
                continue
            reasons.append(
                messages.USER_BUCKETED_INTO_HOLDOUT.format(user_id, variation.key, holdout.key)
            )
            return _make_decision(flag, holdout, variation, DecisionSource.HOLDOUT)
        return None

    def _get_experiment_decision(
        self,
        flag: FeatureFlag,
        user_id: str,
        bucketing_id: str,
        attributes: Mapping[str, Any],
        config: ProjectConfig,
        reasons: list[str],
    ) -> Decision | None:
        for experiment_id in flag.experiment_ids:
            experiment = config.get_experiment(experiment_id)
            if experiment is None:
                reasons.append(messages.EXPERIMENT_NOT_FOUND.format(experiment_id, flag.key))
                continue
            if not experiment.is_running:
                reasons.append(messages.EXPERIMENT_NOT_RUNNING.format(experiment.key))
                continue
            decision = self._decide_experiment(
                flag, experiment, user_id, bucketing_id, attributes, config, reasons
            )
            if decision is not None:
                return decision
        return None

    def _decide_experiment(
        self,
        flag: FeatureFlag,
        experiment: Experiment,
        user_id: str,
        bucketing_id: str,
        attributes: Mapping[str, Any],
        config: ProjectConfig,
        reasons: list[str],
    ) -> Decision | None:
        whitelisted_key = experiment.forced_variations.get(user_id)
        if whitelisted_key is not None:
            variation = experiment.get_variation_by_key(whitelisted_key)
            if variation is not None:
                reasons.append(
                    messages.USER_FORCED_IN_VARIATION.format(user_id, variation.key, experiment.key)
                )
                return _make_decision(flag, experiment, variation, DecisionSource.EXPERIMENT)
            reasons.append(
                messages.FORCED_WHITELIST_VARIATION_NOT_FOUND.format(
                    user_id, whitelisted_key, experiment.key
                )
            )

        if experiment.group_id:
            group = config.get_group(experiment.group_id)
            if group is None:
                reasons.append(messages.INVALID_GROUP_ID.format(experiment.group_id, experiment.key))
                logger.warning(
                    "group_not_found", group_id=experiment.group_id, experiment_key=experiment.key
                )
                return None
            if group.policy == GROUP_POLICY_RANDOM:
                winner = self._bucket(bucketing_id, group.id, group.traffic_allocation, reasons)
                if winner is None:
                    reasons.append(
                        messages.USER_NOT_IN_ANY_EXPERIMENT_OF_GROUP.format(user_id, group.id)
                    )
                    return None
                if winner != experiment.id:
                    reasons.append(
                        messages.USER_NOT_BUCKETED_INTO_EXPERIMENT_IN_GROUP.format(
                            user_id, experiment.key, group.id
                        )
                    )
                    return None
                reasons.append(
                    messages.USER_BUCKETED_INTO_EXPERIMENT_IN_GROUP.format(
                        user_id, experiment.key, group.id
                    )
                )

        if not self._audience_matches(config, experiment, "experiment", attributes, reasons):
            reasons.append(messages.USER_NOT_IN_EXPERIMENT.format(user_id, experiment.key))
            return None

        entity_id = self._bucket(
            bucketing_id, experiment.id, experiment.traffic_allocation, reasons
        )
        if entity_id is None:
            reasons.append(messages.USER_HAS_NO_VARIATION.format(user_id, experiment.key))
            return None
        variation = experiment.get_variation(entity_id)
        if variation is None:
            reasons.append(messages.INVALID_VARIATION_ID.format(entity_id))
            return None
        reasons.append(messages.USER_HAS_VARIATION.format(user_id, variation.key, experiment.key))
        return _make_decision(
            flag, experiment, variation, DecisionSource.EXPERIMENT, persist_to_profile=True
        )

    def _get_rollout_decision(
        self,
        flag: FeatureFlag,
        user_id: str,
        bucketing_id: str,
        attributes: Mapping[str, Any],
        config: ProjectConfig,
        reasons: list[str],
    ) -> Decision | None:
        if not flag.rollout_id:
            reasons.append(messages.NO_ROLLOUT_EXISTS.format(flag.key))
            return None
        rollout = config.get_rollout(flag.rollout_id)
        if rollout is None:
            reasons.append(messages.INVALID_ROLLOUT_ID.format(flag.rollout_id, flag.key))
            return None
        rules = rollout.experiments
        if not rules:
            reasons.append(messages.ROLLOUT_HAS_NO_RULES.format(flag.key))
            return None

        everyone_else = len(rules) - 1
        index = 0
        while index < len(rules):
            rule = rules[index]
            if not self._audience_matches(config, rule, "rule", attributes, reasons):
                reasons.append(
                    messages.USER_DOESNT_MEET_CONDITIONS_FOR_TARGETING_RULE.format(user_id, rule.key)
                )
                index += 1
                continue
            reasons.append(
                messages.USER_MEETS_CONDITIONS_FOR_TARGETING_RULE.format(user_id, rule.key)
            )

            variation = _find_variation(
                rule, self._bucket(bucketing_id, rule.id, rule.traffic_allocation, reasons)
            )
            if variation is not None:
                reasons.append(messages.USER_BUCKETED_INTO_TARGETING_RULE.format(user_id, rule.key))
                reasons.append(messages.USER_IN_ROLLOUT.format(user_id, flag.key))
                return _make_decision(flag, rule, variation, DecisionSource.ROLLOUT)

            if index == everyone_else or self._rollout_fallthrough is RolloutFallthrough.STOP:
                reasons.append(
                    messages.USER_NOT_BUCKETED_INTO_TARGETING_RULE.format(
                        user_id, rule.key, "no further rules are evaluated"
                    )
                )
                break
            if self._rollout_fallthrough is RolloutFallthrough.NEXT_RULE:
                reasons.append(
                    messages.USER_NOT_BUCKETED_INTO_TARGETING_RULE.format(
                        user_id, rule.key, "trying the next rule"
                    )
                )
                index += 1
            else:
                reasons.append(
                    messages.USER_NOT_BUCKETED_INTO_TARGETING_RULE.format(
                        user_id, rule.key, "skipping to the Everyone Else rule"
                    )
                )
                index = everyone_else

        reasons.append(messages.USER_NOT_IN_ROLLOUT.format(user_id, flag.key))
        return None


def _find_variation(entity: Experiment | Holdout, variation_id: str | None) -> Variation | None:
    if variation_id is None:
        return None
    return entity.get_variation(variation_id)


def _make_decision(
    flag: FeatureFlag,
    rule: Experiment,
    variation: Variation,
    source: DecisionSource,
    persist_to_profile: bool = False,
) -> Decision:
    return Decision(
        flag_key=flag.key,
        source=source,
        enabled=variation.feature_enabled,
        variation_id=variation.id,
        variation_key=variation.key,
        rule_id=rule.id,
        rule_key=rule.key,
        persist_to_profile=persist_to_profile,
    )
