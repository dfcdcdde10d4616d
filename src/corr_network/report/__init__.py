"""Report module - Text report generation"""

from .generator import ReportGenerator

__all__ = [
    "ReportGenerator",
]
