"""decision ライブラリの例外型定義"""

from __future__ import annotations


class DecisionError(Exception):
    """decision ライブラリのエラー基底クラス。"""

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class BucketingError(DecisionError):
    """バケッティングキーが不正な場合のエラー。"""

    def __init__(self, message: str) -> None:
        super().__init__(DecisionErrorCodes.INVALID_BUCKETING_ID, message)


class DecisionErrorCodes:
    """DecisionError のエラーコード定数。"""

    INVALID_BUCKETING_ID: str = "INVALID_BUCKETING_ID"
    READ_FILE: str = "READ_FILE_ERROR"
    PARSE_DATAFILE: str = "PARSE_DATAFILE_ERROR"
    INVALID_DATAFILE: str = "INVALID_DATAFILE"
    PARSE_YAML: str = "PARSE_YAML_ERROR"
    VALIDATION: str = "VALIDATION_ERROR"
    NO_DECISION: str = "NO_DECISION"
