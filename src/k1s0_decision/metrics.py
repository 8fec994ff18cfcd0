"""OpenTelemetry メトリクス定義"""

from __future__ import annotations

from opentelemetry import metrics

_meter = metrics.get_meter("k1s0_decision", version="0.1.0")

decisions_total = _meter.create_counter(
    name="decisions_total",
    description="Total number of flag decisions",
    unit="1",
)


def record_decision(source: str, flag_key: str) -> None:
    """判定 1 件を記録する。"""
    decisions_total.add(1, {"source": source, "flag_key": flag_key})
