"""CST-level components: call matching, classification, emission, imports.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

from .assert_equals_transformer import (
    AssertEqualsRewriter,
    CallSite,
    CallSiteCollector,
    PlannedRewrite,
    RewriteApplier,
    RewriteOutcome,
    SkippedCall,
    migrate_source,
)
from .call_classifier import ArgumentTypeTag, Classification, MessageStyle, RewriteShape, classify, tag_argument
from .call_matcher import CallMatcher
from .import_reconciler import ImportEdit, ImportEditKind, ImportReconciler, ReconciliationOutcome
from .rewrite_emitter import EmittedRewrite, RewriteEmitter

__all__ = [
    "ArgumentTypeTag",
    "AssertEqualsRewriter",
    "CallMatcher",
    "CallSite",
    "CallSiteCollector",
    "Classification",
    "EmittedRewrite",
    "ImportEdit",
    "ImportEditKind",
    "ImportReconciler",
    "MessageStyle",
    "PlannedRewrite",
    "ReconciliationOutcome",
    "RewriteApplier",
    "RewriteEmitter",
    "RewriteOutcome",
    "RewriteShape",
    "SkippedCall",
    "classify",
    "migrate_source",
    "tag_argument",
]
