"""AST-based pre-filter for files that may contain legacy assertion calls.

Parsing every candidate file with libcst and resolving qualified names is
comparatively expensive. This detector uses the standard library ``ast``
module to keep only files that import the legacy function in one of the
forms the rewriter can resolve. A file that passes may still have no
matching call; a file that fails cannot have one.
"""

from __future__ import annotations

import ast
from pathlib import Path

from ..targets import DEFAULT_TARGETS, AssertionTargets


class LegacyCallDetector(ast.NodeVisitor):
    """AST visitor that looks for imports of the legacy assertion function."""

    def __init__(self, targets: AssertionTargets = DEFAULT_TARGETS) -> None:
        self.targets = targets
        self.has_legacy_import = False

    def may_contain_legacy_calls(self, file_path: str | Path) -> bool:
        """Check whether ``file_path`` imports the legacy function.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            UnicodeDecodeError: If the file can't be decoded as UTF-8.
            SyntaxError: If the file contains invalid Python syntax.
        """
        file_path = Path(file_path)
        with open(file_path, encoding="utf-8") as f:
            source_code = f.read()
        return self.source_may_contain_legacy_calls(source_code, str(file_path))

    def source_may_contain_legacy_calls(self, source_code: str, filename: str = "<string>") -> bool:
        # Cheap text check before paying for a parse.
        if self.targets.legacy_type.split(".")[0] not in source_code:
            return False
        tree = ast.parse(source_code, filename=filename)
        self.has_legacy_import = False
        self.visit(tree)
        return self.has_legacy_import

    def visit_Import(self, node: ast.Import) -> None:
        legacy_type = self.targets.legacy_type
        for alias in node.names:
            # ``import junit`` also reaches ``junit.Assertions.assertEquals``.
            if alias.name == legacy_type or legacy_type.startswith(f"{alias.name}."):
                self.has_legacy_import = True

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        if node.level or node.module is None:
            return
        t = self.targets
        names = {alias.name for alias in node.names}
        if node.module == t.legacy_type and (t.legacy_method in names or "*" in names):
            self.has_legacy_import = True
        elif node.module == t.legacy_parent and (t.legacy_leaf in names or "*" in names):
            self.has_legacy_import = True
