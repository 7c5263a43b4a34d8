"""Tests for SignalCollector orchestration."""

from __future__ import annotations

from diffdash.collector import SignalCollector, deduplicate
from diffdash.models import Signal
from diffdash.resolution.ancestors import AncestorResolver, ConventionStrategy
from tests._fixtures.repo_builder import RepoBuilder


def _collector(repo_builder: RepoBuilder, **kwargs) -> SignalCollector:  # type: ignore[no-untyped-def]
    root = repo_builder.path()
    resolver = AncestorResolver(root, strategies=[ConventionStrategy(root)])
    return SignalCollector(root, ancestor_resolver=resolver, **kwargs)


def test_collector_attributes_inherited_signals(repo_builder: RepoBuilder) -> None:
    files = repo_builder.write(
        {
            "app/services/child.rb": """
                class Child < Parent
                  def call
                    logger.info("child_called")
                  end
                end
            """,
            "app/services/parent.rb": """
                class Parent
                  def track
                    StatsD.increment("base_event")
                  end
                end
            """,
        }
    )

    result = _collector(repo_builder).collect([files["app/services/child.rb"]])

    assert [(signal.name, signal.inheritance_depth) for signal in result.signals] == [
        ("child_called", 0),
        ("base_event", 1),
    ]
    inherited = result.signals[1]
    assert inherited.type == "counter"
    assert inherited.source_file == files["app/services/parent.rb"]
    assert inherited.defining_class == "Parent"


def test_collector_deduplicates_and_is_repeatable(repo_builder: RepoBuilder) -> None:
    files = repo_builder.write(
        {
            "app/models/order.rb": """
                class Order
                  def ship
                    logger.info("order_shipped")
                    logger.warn("order_shipped")
                    StatsD.increment(counter_name)
                  end
                end
            """,
        }
    )
    path = files["app/models/order.rb"]
    collector = _collector(repo_builder)

    first = collector.collect([path, path])
    second = collector.collect([path, path])

    assert [signal.name for signal in first.signals] == ["order_shipped"]
    assert first.signals[0].metadata["level"] == "info"
    assert len(first.dynamic_metrics) == 2
    assert first.to_dict() == second.to_dict()


def test_collector_resolves_registered_metric_constants(repo_builder: RepoBuilder) -> None:
    files = repo_builder.write(
        {
            "app/services/metrics.rb": """
                module Metrics
                  RequestTotal = Hesiod.register_counter("request_total")
                end
            """,
            "app/controllers/requests_controller.rb": """
                class RequestsController
                  def index
                    Metrics::RequestTotal.increment
                    Metrics::Unknown.increment
                  end
                end
            """,
        }
    )

    result = _collector(repo_builder).collect([files["app/controllers/requests_controller.rb"]])

    assert [(signal.type, signal.name) for signal in result.signals] == [("counter", "request_total")]
    assert result.dynamic_metrics == []


def test_collector_uses_configured_and_changed_definition_files(repo_builder: RepoBuilder) -> None:
    files = repo_builder.write(
        {
            "app/instrumentation/registry.rb": """
                module Registry
                  Latency = Prometheus.histogram(:latency_seconds)
                end
            """,
            "app/models/widget.rb": """
                CACHE_HIT = StatsD.counter("cache.hit")

                class Widget
                  def load
                    CACHE_HIT.increment
                    Registry::Latency.observe(1)
                  end
                end
            """,
        }
    )

    collector = _collector(repo_builder, metric_definition_paths=["app/instrumentation/registry.rb"])
    result = collector.collect([files["app/models/widget.rb"]])

    assert [(signal.type, signal.name) for signal in result.signals] == [
        ("counter", "cache.hit"),
        ("histogram", "latency_seconds"),
    ]


def test_collector_skips_missing_and_unparsable_files(repo_builder: RepoBuilder) -> None:
    files = repo_builder.write(
        {
            "app/models/broken.rb": "class Broken\n  def x(\n    logger.info('never')\nend\n",
            "app/models/fine.rb": "logger.info('fine')\n",
        }
    )

    result = _collector(repo_builder).collect(
        [repo_builder.file("app/models/missing.rb"), files["app/models/broken.rb"], files["app/models/fine.rb"]]
    )

    assert [signal.name for signal in result.signals] == ["fine"]


def test_deduplicate_keeps_first_occurrence() -> None:
    first = Signal("log", "a", "x.rb", "X", metadata={"line": 1})
    duplicate = Signal("log", "a", "x.rb", "X", metadata={"line": 9})
    other_class = Signal("log", "a", "x.rb", "Y")

    assert deduplicate([first, duplicate, other_class]) == [first, other_class]


def test_collector_rebuilds_constant_map_per_run(repo_builder: RepoBuilder) -> None:
    files = repo_builder.write(
        {
            "app/instrumentation/registry.rb": """
                module Registry
                  Hits = StatsD.counter("hits")
                end
            """,
            "app/models/use.rb": """
                class Use
                  def call
                    Registry::Hits.increment
                  end
                end
            """,
        }
    )
    collector = _collector(repo_builder)

    together = collector.collect([files["app/instrumentation/registry.rb"], files["app/models/use.rb"]])
    alone = collector.collect([files["app/models/use.rb"]])

    assert [signal.name for signal in together.signals] == ["hits"]
    assert alone.signals == []


def test_collector_reports_dynamic_metrics_from_ancestors(repo_builder: RepoBuilder) -> None:
    files = repo_builder.write(
        {
            "app/jobs/import_job.rb": """
                class ImportJob < BaseJob
                  def perform
                    logger.info("import_started")
                  end
                end
            """,
            "app/jobs/base_job.rb": """
                class BaseJob
                  def track(name)
                    StatsD.increment(name)
                  end
                end
            """,
        }
    )

    result = _collector(repo_builder).collect([files["app/jobs/import_job.rb"]])

    assert [signal.name for signal in result.signals] == ["import_started"]
    assert [(call.receiver, call.file) for call in result.dynamic_metrics] == [
        ("StatsD", files["app/jobs/base_job.rb"])
    ]
