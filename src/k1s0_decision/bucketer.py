"""ハッシュによる決定的なバケッティング"""

from __future__ import annotations

import math
from typing import Any, Protocol, Sequence

import mmh3

from .exceptions import BucketingError

HASH_SEED = 1
MAX_HASH_VALUE = 2**32
MAX_TRAFFIC_VALUE = 10000


class Allocation(Protocol):
    """トラフィック割り当ての範囲エントリ。"""

    @property
    def entity_id(self) -> str: ...

    @property
    def end_of_range(self) -> int: ...


def make_bucketing_key(bucketing_id: Any, entity_id: str) -> str:
    """実験・グループ・ホールドアウト用のバケッティングキーを組み立てる。"""
    if not isinstance(bucketing_id, str):
        raise BucketingError(f"Bucketing ID must be a string, got {type(bucketing_id).__name__}")
    return bucketing_id + entity_id


def generate_bucket_value(bucketing_key: Any) -> int:
    """バケッティングキーを [0, 10000) の値に写像する。"""
    if not isinstance(bucketing_key, str):
        raise BucketingError(f"Bucketing key must be a string, got {type(bucketing_key).__name__}")
    hash_code = mmh3.hash(bucketing_key, HASH_SEED, signed=False)
    return math.floor(hash_code / MAX_HASH_VALUE * MAX_TRAFFIC_VALUE)


def find_bucket(bucket_value: int, allocations: Sequence[Allocation]) -> str | None:
    """bucket_value を含む範囲のエンティティを返す。無ければ None。"""
    for allocation in allocations:
        if bucket_value < allocation.end_of_range:
            return allocation.entity_id or None
    return None


def bucket(bucketing_key: str, allocations: Sequence[Allocation]) -> str | None:
    """キーをハッシュして割り当て表からエンティティを探す。"""
    return find_bucket(generate_bucket_value(bucketing_key), allocations)
