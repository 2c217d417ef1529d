"""Style-conformance checker for Swift sources."""

from .engine import Linter
from .models import Finding, Severity, SourceFile, SourceSpan
from .reporter import Report, aggregate

__version__ = "0.1.0"

__all__ = ["Finding", "Linter", "Report", "Severity", "SourceFile", "SourceSpan", "aggregate"]
