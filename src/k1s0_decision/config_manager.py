"""プロジェクト設定の供給"""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping

import structlog

from .project_config import ProjectConfig, create_project_config

logger = structlog.stdlib.get_logger(__name__)

ConfigUpdateListener = Callable[[ProjectConfig], None]


class ProjectConfigManager(ABC):
    """ProjectConfig スナップショットの供給元。"""

    def __init__(self) -> None:
        self._listeners: dict[int, ConfigUpdateListener] = {}
        self._listener_ids = itertools.count(1)

    @abstractmethod
    def get_config(self) -> ProjectConfig | None:
        """現在のスナップショットを返す。未準備なら None。"""
        ...

    def add_update_listener(self, listener: ConfigUpdateListener) -> int:
        """設定更新リスナーを登録し、解除用の ID を返す。"""
        listener_id = next(self._listener_ids)
        self._listeners[listener_id] = listener
        return listener_id

    def remove_update_listener(self, listener_id: int) -> bool:
        return self._listeners.pop(listener_id, None) is not None

    def _notify_update(self, config: ProjectConfig) -> None:
        for listener in list(self._listeners.values()):
            try:
                listener(config)
            except Exception as e:
                logger.error("config_update_listener_failed", error=str(e))


class StaticProjectConfigManager(ProjectConfigManager):
    """与えられたデータファイルをそのまま保持する設定マネージャー。"""

    def __init__(self, datafile: Mapping[str, Any] | str | bytes | None = None) -> None:
        super().__init__()
        self._config: ProjectConfig | None = None
        if datafile is not None:
            self._config = create_project_config(datafile)

    def get_config(self) -> ProjectConfig | None:
        return self._config

    def update(self, datafile: Mapping[str, Any] | str | bytes | ProjectConfig) -> ProjectConfig:
        """スナップショットを丸ごと差し替え、リスナーに通知する。

        Raises:
            DecisionError: データファイルが不正な場合（現在の設定は維持される）
        """
        if isinstance(datafile, ProjectConfig):
            config = datafile
        else:
            config = create_project_config(datafile)
        self._config = config
        logger.info("project_config_updated", revision=config.revision)
        self._notify_update(config)
        return config
