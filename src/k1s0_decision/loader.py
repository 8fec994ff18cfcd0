"""設定ファイル・データファイルの読み込み"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .exceptions import DecisionError, DecisionErrorCodes
from .project_config import ProjectConfig, create_project_config
from .settings import DecisionSettings


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """override を優先して再帰的にマージした新しい辞書を返す。リストは置換する。"""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise DecisionError(
            code=DecisionErrorCodes.READ_FILE,
            message=f"Failed to read file: {path}",
            cause=e,
        ) from e


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(_read_text(path)) or {}
    except yaml.YAMLError as e:
        raise DecisionError(
            code=DecisionErrorCodes.PARSE_YAML,
            message=f"Failed to parse YAML: {path}",
            cause=e,
        ) from e
    if not isinstance(data, dict):
        raise DecisionError(
            code=DecisionErrorCodes.VALIDATION,
            message=f"Settings root must be a mapping: {path}",
        )
    return data


def load_settings(base_path: Path, env_path: Path | None = None) -> DecisionSettings:
    """設定ファイルを読み込んで DecisionSettings を返す。

    env_path が存在する場合はベースにディープマージする。
    """
    data = _read_yaml(base_path)
    if env_path is not None and env_path.exists():
        data = deep_merge(data, _read_yaml(env_path))
    try:
        return DecisionSettings.model_validate(data)
    except ValidationError as e:
        raise DecisionError(
            code=DecisionErrorCodes.VALIDATION,
            message=f"Settings validation failed: {e}",
            cause=e,
        ) from e


def load_datafile(path: Path) -> ProjectConfig:
    """JSON データファイルを読み込んで ProjectConfig を返す。"""
    return create_project_config(_read_text(path))
