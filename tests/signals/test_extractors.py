"""Tests for turning visitor detections into signals."""

from __future__ import annotations

import hashlib

from diffdash.resolution.constants import ConstantResolver
from diffdash.signals.extractors import extract_log_signals, extract_metric_signals, fallback_log_name
from diffdash.syntax.parser import parse
from diffdash.syntax.visitor import Visitor


def _visit(source: str, depth: int = 0) -> Visitor:
    return Visitor("app/models/order.rb", inheritance_depth=depth).visit(parse(source))


def test_log_signals_carry_level_line_and_interpolation() -> None:
    visitor = _visit('class Order\n  def ship\n    logger.warn("Order #{id} late")\n  end\nend\n', depth=2)

    (signal,) = extract_log_signals(visitor)
    assert signal.type == "log"
    assert signal.name == "order_late"
    assert signal.source_file == "app/models/order.rb"
    assert signal.defining_class == "Order"
    assert signal.inheritance_depth == 2
    assert signal.metadata == {"level": "warn", "line": 3, "interpolated": True}


def test_log_signals_fall_back_to_stable_hash_name() -> None:
    visitor = _visit("class Order\n  def ship\n    logger.error(exception)\n  end\nend\n")

    (signal,) = extract_log_signals(visitor)
    expected = "log_" + hashlib.sha256(b"Order:error:3").hexdigest()[:8]
    assert signal.name == expected
    assert fallback_log_name(visitor.log_calls[0]) == expected


def test_metric_signals_use_inferred_type() -> None:
    visitor = _visit("Prometheus.gauge(:queue_depth).set(4)\n")

    (signal,) = extract_metric_signals(visitor)
    assert signal.type == "gauge"
    assert signal.name == "queue_depth"
    assert signal.metadata == {"metric_type": "gauge", "line": 1}


def test_constant_metric_signals_require_a_registration() -> None:
    constants = ConstantResolver()
    constants.scan('module Metrics\n  Jobs = Hesiod.register_histogram("job_seconds")\nend\n', "lib/metrics.rb")
    visitor = _visit("Metrics::Jobs.observe(1)\nMetrics::Unknown.increment\n")

    assert extract_metric_signals(visitor) == []
    (signal,) = extract_metric_signals(visitor, constants)
    assert signal.type == "histogram"
    assert signal.name == "job_seconds"
    assert signal.metadata["resolved_from"] == "Metrics::Jobs"
