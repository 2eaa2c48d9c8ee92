from __future__ import annotations

from deadweight.analyzers.duplicate_code.file_data import DuplicateCodeFileData
from deadweight.analyzers.duplicate_code.visitor import DuplicateCodeVisitor
from deadweight.engine.context import FileContext, ProjectContext
from deadweight.suppressions import DUPLICATE_CODE
from deadweight.utils import is_generated_path


class DuplicateCodeDelegate:
    """Per-file half of the duplicate-code analyzer."""

    result_type = DuplicateCodeFileData

    def __init__(self, project: ProjectContext) -> None:
        self.config = project.config

    def analyze_file(self, ctx: FileContext) -> DuplicateCodeFileData | None:
        if ctx.has_parse_errors or ctx.tree is None:
            return None
        if ctx.suppressions.is_disabled_for_file(DUPLICATE_CODE):
            return None
        if is_generated_path(ctx.relative_path, self.config.generated):
            return None

        settings = self.config.duplicate_code
        visitor = DuplicateCodeVisitor(
            path=ctx.path,
            lines=ctx.lines,
            min_tokens=settings.min_tokens,
            min_lines=settings.min_lines,
        )
        visitor.visit(ctx.tree)
        if not visitor.snippets:
            return None
        return DuplicateCodeFileData(path=ctx.path, snippets=tuple(visitor.snippets))
