"""判定理由のメッセージテンプレート"""

from __future__ import annotations

NO_PROJECT_CONFIG = "No project config available; returning default decision for flag {}."
FLAG_KEY_INVALID = 'No flag was found for key "{}"; returning default decision.'
NO_APPLICABLE_RULE = "User {} did not qualify for any rule of flag {}; returning default decision."

EXPERIMENT_NOT_FOUND = 'Experiment ID "{}" referenced by flag {} is not in datafile.'
EXPERIMENT_NOT_RUNNING = "Experiment {} is not running."
INVALID_GROUP_ID = 'Group "{}" referenced by experiment {} is not in datafile.'

BUCKETING_ID_NOT_STRING = "BucketingID attribute is not a string. Defaulted to userId."
VALID_BUCKETING_ID = 'BucketingId is valid: "{}".'
USER_ASSIGNED_TO_BUCKET = "Assigned bucket {} to user with bucketing ID {}."
INVALID_VARIATION_ID = "Bucketed into an invalid variation ID {}."

USER_HAS_FORCED_VARIATION = (
    "Variation {} is mapped to experiment {} and user {} in the forced variation map."
)
FORCED_VARIATION_NOT_FOUND = "Variation key {} forced for experiment {} is not in datafile. Ignoring."
USER_FORCED_IN_VARIATION = "User {} is forced in variation {} of experiment {}."
FORCED_WHITELIST_VARIATION_NOT_FOUND = "User {} is whitelisted into unknown variation {} of experiment {}."

USER_PROFILE_LOOKUP_ERROR = 'Error while looking up user profile for user ID "{}": {}.'
USER_PROFILE_MALFORMED = 'User profile for user ID "{}" is malformed; ignoring it.'
RETURNING_STORED_VARIATION = (
    'Returning previously activated variation "{}" of experiment "{}" for user "{}" from user profile.'
)
SAVED_VARIATION_NOT_FOUND = (
    "User {} was previously bucketed into variation with ID {} for experiment {}, "
    "but no matching variation was found."
)

EVALUATING_AUDIENCES_COMBINED = 'Evaluating audiences for {} "{}": {}.'
AUDIENCE_EVALUATION_RESULT_COMBINED = 'Audiences for {} "{}" collectively evaluated to {}.'
AUDIENCE_EVALUATION_RESULT = 'Audience "{}" evaluated to {}.'
AUDIENCE_NOT_FOUND = 'Audience "{}" is not in datafile; evaluated to UNKNOWN.'
CONDITION_EVALUATION_RESULT = 'Condition {} of audience "{}" evaluated to {}.'

USER_NOT_IN_ANY_EXPERIMENT_OF_GROUP = "User {} is not in any experiment of group {}."
USER_NOT_BUCKETED_INTO_EXPERIMENT_IN_GROUP = "User {} is not in experiment {} of group {}."
USER_BUCKETED_INTO_EXPERIMENT_IN_GROUP = "User {} is in experiment {} of group {}."

USER_NOT_IN_EXPERIMENT = "User {} does not meet conditions to be in experiment {}."
USER_HAS_NO_VARIATION = "User {} is in no variation of experiment {}."
USER_HAS_VARIATION = "User {} is in variation {} of experiment {}."

HOLDOUT_NOT_RUNNING = "Holdout {} is not running."
USER_NOT_IN_HOLDOUT_AUDIENCE = "User {} does not meet conditions for holdout {}."
USER_BUCKETED_INTO_HOLDOUT = "User {} is in variation {} of holdout {}."
USER_NOT_BUCKETED_INTO_HOLDOUT = "User {} is not bucketed into holdout {}."

NO_ROLLOUT_EXISTS = "There is no rollout of flag {}."
INVALID_ROLLOUT_ID = 'Invalid rollout ID "{}" attached to flag {}.'
ROLLOUT_HAS_NO_RULES = "Rollout of flag {} has no rules."
USER_MEETS_CONDITIONS_FOR_TARGETING_RULE = "User {} meets conditions for targeting rule {}."
USER_DOESNT_MEET_CONDITIONS_FOR_TARGETING_RULE = "User {} does not meet conditions for targeting rule {}."
USER_BUCKETED_INTO_TARGETING_RULE = "User {} bucketed into targeting rule {}."
USER_NOT_BUCKETED_INTO_TARGETING_RULE = "User {} not bucketed into targeting rule {}; {}."
USER_IN_ROLLOUT = "User {} is in rollout of flag {}."
USER_NOT_IN_ROLLOUT = "User {} is not in rollout of flag {}."
