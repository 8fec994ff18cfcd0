"""フィーチャーフラグクライアント"""

from __future__ import annotations

from typing import Collection, Iterable, Protocol

import structlog

from .config_manager import ProjectConfigManager
from .decision import DecideOption, Decision
from .decision_service import DecisionService
from .exceptions import DecisionError, DecisionErrorCodes
from .forced_variation import ForcedVariationStore
from .metrics import record_decision
from .models import EvaluationContext, EvaluationResult
from .notification import Notification, NotificationCenter, NotificationType
from .project_config import ProjectConfig
from .settings import DecisionSettings
from .user_profile import UserProfile, UserProfileService

logger = structlog.stdlib.get_logger(__name__)


class FeatureFlagClientProtocol(Protocol):
    """フィーチャーフラグクライアントプロトコル。"""

    async def decide(
        self,
        flag_key: str,
        context: EvaluationContext,
        options: Collection[DecideOption] = (),
    ) -> EvaluationResult: ...

    async def decide_for_keys(
        self,
        flag_keys: Iterable[str],
        context: EvaluationContext,
        options: Collection[DecideOption] = (),
    ) -> dict[str, EvaluationResult]: ...

    async def decide_all(
        self,
        context: EvaluationContext,
        options: Collection[DecideOption] = (),
    ) -> dict[str, EvaluationResult]: ...

    async def is_enabled(self, flag_key: str, context: EvaluationContext) -> bool: ...


class FeatureFlagClient:
    """判定エンジンを包むクライアント。

    ユーザープロファイルの保存、通知、メトリクス記録を担う。
    """

    def __init__(
        self,
        config_manager: ProjectConfigManager,
        *,
        settings: DecisionSettings | None = None,
        user_profile_service: UserProfileService | None = None,
        forced_variations: ForcedVariationStore | None = None,
        notification_center: NotificationCenter | None = None,
        decision_service: DecisionService | None = None,
    ) -> None:
        self._settings = settings or DecisionSettings()
        self._config_manager = config_manager
        self._user_profile_service = user_profile_service
        self._forced_variations = forced_variations or ForcedVariationStore()
        self.notification_center = notification_center or NotificationCenter()
        self._decision_service = decision_service or DecisionService(
            rollout_fallthrough=self._settings.decision.rollout_fallthrough
        )

    async def decide(
        self,
        flag_key: str,
        context: EvaluationContext,
        options: Collection[DecideOption] = (),
    ) -> EvaluationResult:
        """フラグを判定する。"""
        return await self._decide(flag_key, context, self._merge_options(options))

    async def decide_for_keys(
        self,
        flag_keys: Iterable[str],
        context: EvaluationContext,
        options: Collection[DecideOption] = (),
    ) -> dict[str, EvaluationResult]:
        """複数フラグを判定する。ENABLED_FLAGS_ONLY 指定時は有効なフラグのみ返す。"""
        merged = self._merge_options(options)
        results: dict[str, EvaluationResult] = {}
        for flag_key in flag_keys:
            result = await self._decide(flag_key, context, merged)
            if DecideOption.ENABLED_FLAGS_ONLY in merged and not result.enabled:
                continue
            results[flag_key] = result
        return results

    async def decide_all(
        self,
        context: EvaluationContext,
        options: Collection[DecideOption] = (),
    ) -> dict[str, EvaluationResult]:
        """データファイル上の全フラグを判定する。"""
        config = self._config_manager.get_config()
        if config is None:
            logger.warning("decide_all_without_config", user_id=context.user_id)
            return {}
        return await self.decide_for_keys(list(config.feature_key_map), context, options)

    async def is_enabled(self, flag_key: str, context: EvaluationContext) -> bool:
        result = await self.decide(flag_key, context)
        return result.enabled

    def set_forced_variation(
        self, experiment_key: str, user_id: str, variation_key: str | None
    ) -> bool:
        """強制バリエーションを設定する。None を渡すと解除する。"""
        if variation_key is None:
            self._forced_variations.remove(experiment_key, user_id)
            return True
        config = self._config_manager.get_config()
        if config is None:
            logger.warning("forced_variation_without_config", experiment_key=experiment_key)
            return False
        experiment = config.get_experiment_by_key(experiment_key)
        if experiment is None:
            logger.warning("forced_variation_unknown_experiment", experiment_key=experiment_key)
            return False
        if experiment.get_variation_by_key(variation_key) is None:
            logger.warning(
                "forced_variation_unknown_variation",
                experiment_key=experiment_key,
                variation_key=variation_key,
            )
            return False
        self._forced_variations.set(experiment_key, user_id, variation_key)
        return True

    def get_forced_variation(self, experiment_key: str, user_id: str) -> str | None:
        return self._forced_variations.get(experiment_key, user_id)

    def _merge_options(self, options: Collection[DecideOption]) -> frozenset[DecideOption]:
        return frozenset(options) | frozenset(self._settings.decision.default_decide_options)

    async def _decide(
        self,
        flag_key: str,
        context: EvaluationContext,
        options: frozenset[DecideOption],
    ) -> EvaluationResult:
        config = self._config_manager.get_config()
        ignore_profile = DecideOption.IGNORE_USER_PROFILE_SERVICE in options
        lookup = (
            self._user_profile_service.lookup
            if self._user_profile_service is not None and not ignore_profile
            else None
        )
        response = self._decision_service.decide(
            flag_key,
            context.user_id,
            context.attributes,
            config,
            self._forced_variations.as_mapping(),
            lookup,
            options,
        )
        decision = response.result
        if decision is None:
            raise DecisionError(DecisionErrorCodes.NO_DECISION, f"no decision for flag {flag_key}")
        if decision.persist_to_profile and not ignore_profile:
            self._save_profile(context.user_id, decision)

        record_decision(decision.source.value, flag_key)
        reasons = response.reasons
        result = EvaluationResult(
            flag_key=flag_key,
            enabled=decision.enabled,
            variation_key=decision.variation_key,
            rule_key=decision.rule_key,
            source=decision.source,
            reasons=reasons if DecideOption.INCLUDE_REASONS in options else [],
        )
        await self.notification_center.send_notifications(
            Notification(
                notification_type=NotificationType.DECISION,
                payload=_decision_payload(context, decision, reasons, config),
            )
        )
        return result

    def _save_profile(self, user_id: str, decision: Decision) -> None:
        if self._user_profile_service is None or decision.rule_id is None:
            return
        if decision.variation_id is None:
            return
        try:
            profile = self._user_profile_service.lookup(user_id) or UserProfile(user_id=user_id)
            profile.set_variation_id(decision.rule_id, decision.variation_id)
            self._user_profile_service.save(profile)
        except Exception as e:
            logger.error("user_profile_save_failed", user_id=user_id, error=str(e))


def _decision_payload(
    context: EvaluationContext,
    decision: Decision,
    reasons: list[str],
    config: ProjectConfig | None,
) -> dict[str, object]:
    return {
        "flag_key": decision.flag_key,
        "user_id": context.user_id,
        "attributes": dict(context.attributes),
        "enabled": decision.enabled,
        "variation_id": decision.variation_id,
        "variation_key": decision.variation_key,
        "rule_id": decision.rule_id,
        "rule_key": decision.rule_key,
        "source": decision.source.value,
        "revision": config.revision if config is not None else None,
        "reasons": reasons,
    }
