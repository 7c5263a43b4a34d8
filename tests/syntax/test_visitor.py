"""Tests for call-site detection in the AST visitor."""

from __future__ import annotations

import textwrap

import pytest

from diffdash.models import TOP_LEVEL
from diffdash.syntax.parser import parse
from diffdash.syntax.visitor import Visitor, derive_event_name, infer_metric_type, slugify


def _visit(source: str, path: str = "app/models/example.rb") -> Visitor:
    return Visitor(path).visit(parse(textwrap.dedent(source).lstrip("\n")))


def test_visitor_ignores_code_without_observability_receivers() -> None:
    visitor = _visit(
        """
        class Foo
          def bar
            puts "hello"
            Redis.new.get("key")
            items.map { |item| item.info }
          end
        end
        """
    )

    assert visitor.log_calls == []
    assert visitor.metric_calls == []
    assert visitor.dynamic_metric_calls == []
    assert visitor.constant_metric_calls == []


def test_visitor_detects_plain_logger_call() -> None:
    visitor = _visit('class Foo; def bar; logger.info "payment_processed"; end; end\n')

    assert len(visitor.log_calls) == 1
    call = visitor.log_calls[0]
    assert call.event_name == "payment_processed"
    assert call.level == "info"
    assert call.defining_class == "Foo"
    assert call.interpolated is False


@pytest.mark.parametrize(
    "statement, level, name",
    [
        ('Rails.logger.error(:payment_failed)', "error", "payment_failed"),
        ('self.logger.debug("Cache warmed")', "debug", "cache_warmed"),
        ('@logger.warn("Disk almost full!")', "warn", "disk_almost_full"),
        ('@@audit_logger.fatal("halt")', "fatal", "halt"),
        ('request_logger.unknown("odd")', "unknown", "odd"),
        ('LOGGER.info("boot")', "info", "boot"),
        ('logger.add(Logger::WARN, "retrying")', "warn", "retrying"),
        ('logger.add(:error, "gave up")', "error", "gave_up"),
        ('logger.log(1, "started")', "info", "started"),
        ('self.class.logger.info("Job started")', "info", "job_started"),
        ('worker.logger.warn("stalled")', "warn", "stalled"),
    ],
)
def test_visitor_recognizes_logger_receivers_and_levels(statement: str, level: str, name: str) -> None:
    visitor = _visit(f"class Worker\n  def perform\n    {statement}\n  end\nend\n")

    assert [(call.level, call.event_name) for call in visitor.log_calls] == [(level, name)]


def test_visitor_ignores_generic_log_without_severity() -> None:
    visitor = _visit('logger.add("no severity")\nlogger.log(9, "out of range")\n')

    assert visitor.log_calls == []


def test_visitor_requires_allow_listed_constant_before_logger() -> None:
    visitor = _visit('Sidekiq.logger.info("queued")\nRails.logger.info("served")\n')

    assert [call.event_name for call in visitor.log_calls] == ["served"]


def test_visitor_reads_heredoc_messages() -> None:
    visitor = _visit(
        """
        class Shipping
          def ship(id)
            logger.info(<<~MSG)
              Order #{id} shipped
            MSG
            logger.warn(<<~TEXT)
              payment processed
            TEXT
          end
        end
        """
    )

    assert [(call.event_name, call.interpolated) for call in visitor.log_calls] == [
        ("order_shipped", True),
        ("payment_processed", False),
    ]


def test_visitor_marks_interpolated_messages() -> None:
    visitor = _visit(
        """
        class Shipping
          def ship(id)
            logger.info("Order #{id} shipped")
          end
        end
        """
    )

    call = visitor.log_calls[0]
    assert call.event_name == "order_shipped"
    assert call.interpolated is True


def test_visitor_marks_interpolation_even_without_a_name() -> None:
    visitor = _visit('logger.info("#{a}#{b}")\nlogger.info(message)\n')

    first, second = visitor.log_calls
    assert first.event_name is None
    assert first.interpolated is True
    assert second.event_name is None
    assert second.interpolated is False


def test_visitor_attributes_namespaces() -> None:
    visitor = _visit(
        """
        logger.info("booting")

        module Billing
          class Invoice < ApplicationRecord
            def pay
              logger.info("invoice_paid")
            end
          end

          class Payments::Refund
            def run
              logger.info("refund_issued")
            end
          end
        end
        """
    )

    assert [call.defining_class for call in visitor.log_calls] == [
        TOP_LEVEL,
        "Billing::Invoice",
        "Billing::Payments::Refund",
    ]
    classes = [(cls.qualified_name, cls.parent_name) for cls in visitor.structure.classes]
    assert classes == [("Billing::Invoice", "ApplicationRecord"), ("Billing::Payments::Refund", None)]
    assert [module.qualified_name for module in visitor.structure.modules] == ["Billing"]


def test_visitor_records_one_relation_per_included_module() -> None:
    visitor = _visit(
        """
        class Order
          include Auditable, Trackable
          prepend Instrumented
          extend ClassMethods
        end
        """
    )

    relations = [(rel.module_name, rel.kind, rel.including_class) for rel in visitor.structure.relations]
    assert relations == [
        ("Auditable", "include", "Order"),
        ("Trackable", "include", "Order"),
        ("Instrumented", "prepend", "Order"),
        ("ClassMethods", "extend", "Order"),
    ]
    assert [rel.module_name for rel in visitor.structure.included] == ["Auditable", "Trackable"]


def test_visitor_detects_trait_logs_when_trait_is_mixed_in_later() -> None:
    visitor = _visit(
        """
        class Importer
          def run
            log "import started"
            log :warn, "rows skipped"
          end

          include Loggy::ClassLogger
        end
        """
    )

    assert [(call.level, call.event_name) for call in visitor.log_calls] == [
        ("info", "import_started"),
        ("warn", "rows_skipped"),
    ]


def test_visitor_ignores_bare_log_without_trait() -> None:
    visitor = _visit(
        """
        class Importer
          def run
            log "import started"
          end
        end

        class Exporter
          extend Loggy::InstanceLogger
          def run
            log "export started"
          end
        end
        """
    )

    assert [(call.defining_class, call.event_name) for call in visitor.log_calls] == [
        ("Exporter", "export_started")
    ]


def test_visitor_detects_chained_metric_with_literal_name() -> None:
    visitor = _visit("Prometheus.counter(:requests_total).increment\n")

    assert len(visitor.metric_calls) == 1
    metric = visitor.metric_calls[0]
    assert metric.name == "requests_total"
    assert metric.metric_type == "counter"
    assert metric.defining_class == TOP_LEVEL
    assert visitor.dynamic_metric_calls == []


def test_visitor_flags_chained_metric_with_variable_name() -> None:
    visitor = _visit("Prometheus.counter(name).increment\n")

    assert visitor.metric_calls == []
    assert len(visitor.dynamic_metric_calls) == 1
    assert visitor.dynamic_metric_calls[0].receiver == "Prometheus"


def test_visitor_flags_direct_metric_with_dynamic_name() -> None:
    visitor = _visit("StatsD.increment(dynamic_var)\n", path="app/jobs/sync.rb")

    assert visitor.metric_calls == []
    dynamic = visitor.dynamic_metric_calls[0]
    assert dynamic.receiver == "StatsD"
    assert dynamic.metric_type == "counter"
    assert dynamic.file == "app/jobs/sync.rb"
    assert dynamic.line == 1


def test_visitor_flags_metric_without_arguments_and_interpolated_names() -> None:
    visitor = _visit('StatsD.increment\nDatadog.timing("jobs.#{queue}", 5)\n')

    assert visitor.metric_calls == []
    assert [(call.receiver, call.metric_type) for call in visitor.dynamic_metric_calls] == [
        ("StatsD", "counter"),
        ("Datadog", "histogram"),
    ]


def test_visitor_does_not_treat_direct_factory_as_metric() -> None:
    visitor = _visit('StatsD.gauge("queue_depth", 10)\nPrometheus.register_counter(:jobs)\n')

    assert visitor.metric_calls == []
    assert visitor.dynamic_metric_calls == []
    assert visitor.constant_metric_calls == []


def test_visitor_infers_metric_types() -> None:
    visitor = _visit(
        """
        Prometheus.histogram(:latency_seconds).observe(0.2)
        Hesiod.register_gauge("queue_depth").set(3)
        StatsD.timing("render_ms", 5)
        Statsd.set("active_users", 10)
        DogStatsD.summary(:payload_bytes).observe(12)
        StatsD.decrement("slots", tags: ["a"])
        """
    )

    assert [(call.name, call.metric_type) for call in visitor.metric_calls] == [
        ("latency_seconds", "histogram"),
        ("queue_depth", "gauge"),
        ("render_ms", "histogram"),
        ("active_users", "gauge"),
        ("payload_bytes", "summary"),
        ("slots", "counter"),
    ]


def test_visitor_detects_nested_calls() -> None:
    visitor = _visit(
        """
        class Renderer
          def call
            StatsD.time("render") do
              logger.info("rendered")
            end
          end
        end
        """
    )

    assert [call.name for call in visitor.metric_calls] == ["render"]
    assert [call.event_name for call in visitor.log_calls] == ["rendered"]


def test_visitor_records_constant_metric_calls() -> None:
    visitor = _visit(
        """
        module Api
          class RequestsController
            def index
              Metrics::RequestTotal.increment(labels: { path: "/" })
            end
          end
        end
        """
    )

    call = visitor.constant_metric_calls[0]
    assert call.constant == "Metrics::RequestTotal"
    assert call.namespace == ("Api", "RequestsController")
    assert call.defining_class == "Api::RequestsController"


def test_visitor_handles_missing_tree() -> None:
    visitor = Visitor("broken.rb").visit(None)

    assert visitor.log_calls == []
    assert visitor.structure.classes == []


def test_slugify_collapses_and_truncates() -> None:
    assert slugify("  User -- logged   in!! ") == "user_logged_in"
    assert slugify("!!!") is None
    assert len(slugify("word " * 30)) == 50


def test_derive_event_name_keeps_symbols_verbatim() -> None:
    root = parse("logger.info(:Payment_Done)\n")

    assert derive_event_name(root.children[0].children[2]) == "Payment_Done"


def test_infer_metric_type_maps_register_variants() -> None:
    assert infer_metric_type("register_histogram") == "histogram"
    assert infer_metric_type("emit") == "counter"
