"""AST-based detection of files that use the legacy assertion function."""

from .legacy_call_detector import LegacyCallDetector

__all__ = ["LegacyCallDetector"]
