"""プロジェクト設定のユニットテスト"""

import json
from typing import Any

import pytest
from k1s0_decision import DecisionError, DecisionErrorCodes, ProjectConfig, create_project_config

from conftest import build_datafile


def test_create_from_json_string(datafile: dict[str, Any]) -> None:
    """JSON 文字列からも作成できること。"""
    config = create_project_config(json.dumps(datafile))
    assert config.revision == "42"
    assert config.get_feature_flag("checkout") is not None


def test_invalid_json() -> None:
    """不正な JSON で DecisionError(PARSE_DATAFILE_ERROR) が発生すること。"""
    with pytest.raises(DecisionError) as exc_info:
        create_project_config("{not json")
    assert exc_info.value.code == DecisionErrorCodes.PARSE_DATAFILE
    assert str(exc_info.value).startswith("PARSE_DATAFILE_ERROR: ")


def test_non_object_datafile() -> None:
    """オブジェクトでないデータファイルは不正となること。"""
    with pytest.raises(DecisionError) as exc_info:
        create_project_config("[1, 2]")
    assert exc_info.value.code == DecisionErrorCodes.INVALID_DATAFILE


def test_decreasing_ranges_are_rejected() -> None:
    """割り当て区間が降順のデータファイルは不正となること。"""
    datafile = build_datafile()
    datafile["experiments"][0]["trafficAllocation"] = [
        {"entityId": "2002", "endOfRange": 8000},
        {"entityId": "2001", "endOfRange": 4000},
    ]
    with pytest.raises(DecisionError) as exc_info:
        create_project_config(datafile)
    assert exc_info.value.code == DecisionErrorCodes.INVALID_DATAFILE


def test_range_out_of_bounds_is_rejected() -> None:
    """10000 を超える区間は不正となること。"""
    datafile = build_datafile()
    datafile["experiments"][0]["trafficAllocation"] = [{"entityId": "2001", "endOfRange": 10001}]
    with pytest.raises(DecisionError):
        create_project_config(datafile)


def test_group_experiments_carry_group_id(config: ProjectConfig) -> None:
    """グループ内の実験にグループ ID が設定されること。"""
    experiment = config.get_experiment("4001")
    assert experiment is not None
    assert experiment.group_id == "1886780722"
    assert config.get_experiment_by_key("group_exp_b").group_id == "1886780722"


def test_rollout_rules_are_indexed(config: ProjectConfig) -> None:
    """ロールアウトのルールも ID とキーで引けること。"""
    assert config.get_experiment("5102").key == "everyone_else"
    assert config.get_experiment_by_key("adults_rule").id == "5101"


def test_audience_conditions_fallback_to_audience_ids(config: ProjectConfig) -> None:
    """audienceConditions が無ければ audienceIds が暗黙の OR として使われること。"""
    assert config.get_audience_conditions("5101") is not None
    assert config.get_audience_conditions("5102") is None
    assert config.get_audience_conditions("1886780721") is not None


def test_holdouts_for_flag(config: ProjectConfig) -> None:
    """全体ホールドアウトの後に明示的に含むホールドアウトが並ぶこと。"""
    assert [h.key for h in config.get_holdouts_for_flag("held")] == ["draft_holdout", "held_holdout"]
    assert [h.key for h in config.get_holdouts_for_flag("checkout")] == ["draft_holdout"]


def test_holdout_applies_to() -> None:
    """includeFlags / excludeFlags による適用判定。"""
    datafile = build_datafile()
    datafile["holdouts"][0]["excludeFlags"] = ["checkout"]
    config = create_project_config(datafile)
    holdouts = {h.id: h for h in config.datafile.holdouts}
    global_holdout = holdouts["8002"]
    local_holdout = holdouts["8001"]
    assert global_holdout.applies_to("held")
    assert not global_holdout.applies_to("checkout")
    assert local_holdout.applies_to("held")
    assert not local_holdout.applies_to("checkout")


def test_config_maps_are_read_only(config: ProjectConfig) -> None:
    """索引は変更できないこと。"""
    with pytest.raises(TypeError):
        config.feature_key_map["new"] = config.feature_key_map["checkout"]  # type: ignore[index]


def test_attribute_tables(config: ProjectConfig) -> None:
    """属性 ID とキーの相互参照。"""
    assert config.attribute_key_map["age"].id == "a1"
    assert config.attribute_id_map["a2"].key == "browser"
