"""Report payload assembly."""

from .generator import ReportGenerator, build_report_payload

__all__ = ["ReportGenerator", "build_report_payload"]
