"""ユーザープロファイル（過去の割り当ての記録）"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

VARIATION_ID_KEY = "variation_id"


@dataclass
class UserProfile:
    """ユーザーごとの実験割り当て。experiment_bucket_map は {experiment_id: {"variation_id": ...}}。"""

    user_id: str
    experiment_bucket_map: dict[str, dict[str, str]] = field(default_factory=dict)

    def get_variation_id(self, experiment_id: str) -> str | None:
        entry = self.experiment_bucket_map.get(experiment_id)
        if not isinstance(entry, dict):
            return None
        variation_id = entry.get(VARIATION_ID_KEY)
        return variation_id if isinstance(variation_id, str) else None

    def set_variation_id(self, experiment_id: str, variation_id: str) -> None:
        self.experiment_bucket_map[experiment_id] = {VARIATION_ID_KEY: variation_id}


class UserProfileService(ABC):
    """ユーザープロファイルの保存先。"""

    @abstractmethod
    def lookup(self, user_id: str) -> UserProfile | None: ...

    @abstractmethod
    def save(self, profile: UserProfile) -> None: ...


class InMemoryUserProfileService(UserProfileService):
    """インメモリのユーザープロファイル保存先。"""

    def __init__(self) -> None:
        self._profiles: dict[str, UserProfile] = {}

    def lookup(self, user_id: str) -> UserProfile | None:
        profile = self._profiles.get(user_id)
        if profile is None:
            return None
        return UserProfile(
            user_id=profile.user_id,
            experiment_bucket_map={k: dict(v) for k, v in profile.experiment_bucket_map.items()},
        )

    def save(self, profile: UserProfile) -> None:
        self._profiles[profile.user_id] = UserProfile(
            user_id=profile.user_id,
            experiment_bucket_map={k: dict(v) for k, v in profile.experiment_bucket_map.items()},
        )
