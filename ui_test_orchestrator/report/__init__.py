"""Scenario report aggregation and sinks."""

from ui_test_orchestrator.report.aggregator import ReportAggregator
from ui_test_orchestrator.report.entry import ReportEntry
from ui_test_orchestrator.report.sink import JsonReportSink, ReportSink

__all__ = ["JsonReportSink", "ReportAggregator", "ReportEntry", "ReportSink"]
