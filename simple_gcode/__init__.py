"""Simple G-code - modal G-code interpreter core.

Turns G-code programs into an ordered stream of typed tokens with units
and scaling applied, plus job bounds and arc geometry for consumers.
"""

__version__ = "1.2"
__author__ = "Bob Kolbasowski"

from .gcode_job import GcodeJob, JobSummary
from .gcode_loader import JobLoader
from .gcode_parser import GcodeParser
from .utils import ParserConfig, Settings

__all__ = [
    "GcodeJob",
    "GcodeParser",
    "JobLoader",
    "JobSummary",
    "ParserConfig",
    "Settings",
]
