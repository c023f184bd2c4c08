"""Step modules for individual pipeline operations.

Each step module contains the concrete implementations of individual
pipeline steps that perform specific transformations.
"""

from .format_steps import FormatCodeStep, ValidateGeneratedCodeStep
from .output_steps import WriteOutputStep
from .parse_steps import GenerateCodeStep, ParseSourceStep
from .rewrite_steps import ReconcileImportsStep, RewriteCallsStep

__all__ = [
    "ParseSourceStep",
    "RewriteCallsStep",
    "ReconcileImportsStep",
    "GenerateCodeStep",
    "FormatCodeStep",
    "ValidateGeneratedCodeStep",
    "WriteOutputStep",
]
