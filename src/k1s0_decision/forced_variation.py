"""強制バリエーションの保持"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping


class ForcedVariationStore:
    """{experiment_key: {user_id: variation_key}} 形式の強制割り当て。

    スレッド安全性は呼び出し側で担保する。
    """

    def __init__(self) -> None:
        self._variations: dict[str, dict[str, str]] = {}

    def set(self, experiment_key: str, user_id: str, variation_key: str) -> None:
        self._variations.setdefault(experiment_key, {})[user_id] = variation_key

    def get(self, experiment_key: str, user_id: str) -> str | None:
        return self._variations.get(experiment_key, {}).get(user_id)

    def remove(self, experiment_key: str, user_id: str) -> bool:
        """強制割り当てを解除する。解除した場合 True。"""
        users = self._variations.get(experiment_key)
        if users is None or user_id not in users:
            return False
        del users[user_id]
        if not users:
            del self._variations[experiment_key]
        return True

    def as_mapping(self) -> Mapping[str, Mapping[str, str]]:
        """判定に渡す読み取り専用のスナップショットを返す。"""
        return MappingProxyType(
            {key: MappingProxyType(dict(users)) for key, users in self._variations.items()}
        )
