"""
Report generation components for runreport.

Provides the screenshot gallery assembler, screenshot captions and the
shareable links to launch output.
"""

from .assembler import ReportAssembler, ScreenshotComments
from .links import ReportLinks

__all__ = [
    "ReportAssembler",
    "ScreenshotComments",
    "ReportLinks",
]
