"""Reporting package — report sinks and run summaries."""

from .csv_export import CsvSink
from .json_export import export_summary_json
from .markdown_report import export_summary_markdown

__all__ = [
    "CsvSink",
    "export_summary_json",
    "export_summary_markdown",
]
