"""k1s0 decision library."""

from .audience import AudienceEvaluator
from .bucketer import bucket, find_bucket, generate_bucket_value, make_bucketing_key
from .client import FeatureFlagClient, FeatureFlagClientProtocol
from .condition_tree import And, Leaf, Not, Operator, Or, Tristate, evaluate, parse_condition_tree
from .conditions import ConditionType, LeafCondition, MatchType, match_leaf, parse_leaf_condition
from .config_manager import ProjectConfigManager, StaticProjectConfigManager
from .decision import DecideOption, Decision, DecisionResponse, DecisionSource
from .decision_service import DecisionService
from .exceptions import BucketingError, DecisionError, DecisionErrorCodes
from .forced_variation import ForcedVariationStore
from .loader import load_datafile, load_settings
from .logger import new_logger
from .models import EvaluationContext, EvaluationResult
from .notification import Notification, NotificationCenter, NotificationType
from .project_config import ProjectConfig, create_project_config
from .semver import compare_version
from .settings import DecisionSettings, RolloutFallthrough
from .user_profile import InMemoryUserProfileService, UserProfile, UserProfileService

__all__ = [
    "And",
    "AudienceEvaluator",
    "BucketingError",
    "ConditionType",
    "DecideOption",
    "Decision",
    "DecisionError",
    "DecisionErrorCodes",
    "DecisionResponse",
    "DecisionService",
    "DecisionSettings",
    "DecisionSource",
    "EvaluationContext",
    "EvaluationResult",
    "FeatureFlagClient",
    "FeatureFlagClientProtocol",
    "ForcedVariationStore",
    "InMemoryUserProfileService",
    "Leaf",
    "LeafCondition",
    "MatchType",
    "Not",
    "Notification",
    "NotificationCenter",
    "NotificationType",
    "Operator",
    "Or",
    "ProjectConfig",
    "ProjectConfigManager",
    "RolloutFallthrough",
    "StaticProjectConfigManager",
    "Tristate",
    "UserProfile",
    "UserProfileService",
    "bucket",
    "compare_version",
    "create_project_config",
    "evaluate",
    "find_bucket",
    "generate_bucket_value",
    "load_datafile",
    "load_settings",
    "make_bucketing_key",
    "match_leaf",
    "new_logger",
    "parse_condition_tree",
    "parse_leaf_condition",
]
