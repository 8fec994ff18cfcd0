"""semver_* マッチ用のセマンティックバージョン比較"""

from __future__ import annotations

import re

PRE_RELEASE_SEPARATOR = "-"
BUILD_SEPARATOR = "+"

_NUMERIC = re.compile(r"\d+", re.ASCII)
_WHITESPACE = re.compile(r"\s")


def _is_numeric(part: str) -> bool:
    return _NUMERIC.fullmatch(part) is not None


def is_pre_release(version: str) -> bool:
    """ビルド接尾辞より前にプレリリース接尾辞があれば True を返す。"""
    pre_index = version.find(PRE_RELEASE_SEPARATOR)
    build_index = version.find(BUILD_SEPARATOR)
    if pre_index < 0:
        return False
    return build_index < 0 or pre_index < build_index


def is_build(version: str) -> bool:
    """プレリリース接尾辞より前にビルド接尾辞があれば True を返す。"""
    pre_index = version.find(PRE_RELEASE_SEPARATOR)
    build_index = version.find(BUILD_SEPARATOR)
    if build_index < 0:
        return False
    return pre_index < 0 or build_index < pre_index


def split_version(version: str) -> list[str] | None:
    """バージョンを数値部分と任意の接尾辞に分割する。

    セマンティックバージョンとして不正な場合は None を返す。
    """
    if _WHITESPACE.search(version):
        return None

    prefix, suffix = version, ""
    if is_pre_release(version):
        prefix, suffix = version.split(PRE_RELEASE_SEPARATOR, 1)
    elif is_build(version):
        prefix, suffix = version.split(BUILD_SEPARATOR, 1)

    if prefix.count(".") > 2:
        return None
    parts = prefix.split(".")
    if not all(_is_numeric(part) for part in parts):
        return None
    if suffix:
        parts.append(suffix)
    return parts


def compare_version(condition_version: str, user_version: str) -> int | None:
    """ユーザーのバージョンを条件のバージョンと比較する。

    ユーザー側が小さければ -1、等しければ 0、大きければ 1 を返す。
    どちらかが不正なら None。条件側の要素が少ない場合は前方一致で比較する。
    """
    condition_parts = split_version(condition_version)
    user_parts = split_version(user_version)
    if condition_parts is None or user_parts is None:
        return None

    condition_is_pre = is_pre_release(condition_version)
    user_is_pre = is_pre_release(user_version)

    for index, condition_part in enumerate(condition_parts):
        if len(user_parts) <= index:
            if condition_is_pre or is_build(condition_version):
                return 1
            return -1

        user_part = user_parts[index]
        if not _is_numeric(user_part):
            if user_part < condition_part:
                return 1 if condition_is_pre and not user_is_pre else -1
            if user_part > condition_part:
                return -1 if not condition_is_pre and user_is_pre else 1
        elif _is_numeric(condition_part):
            user_number, condition_number = int(user_part), int(condition_part)
            if user_number < condition_number:
                return -1
            if user_number > condition_number:
                return 1

    if user_is_pre and not condition_is_pre:
        return -1
    return 0
