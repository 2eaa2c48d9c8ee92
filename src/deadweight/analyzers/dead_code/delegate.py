from __future__ import annotations

from deadweight.analyzers.dead_code.file_data import DeadCodeFileData
from deadweight.analyzers.dead_code.visitor import DeadCodeVisitor
from deadweight.analyzers.dependencies import ImportResolver
from deadweight.engine.context import FileContext, ProjectContext
from deadweight.suppressions import DEAD_CODE
from deadweight.utils import is_generated_path


class DeadCodeDelegate:
    """Per-file half of the dead-code analyzer."""

    result_type = DeadCodeFileData

    def __init__(self, project: ProjectContext) -> None:
        self.resolver = ImportResolver(project.info.root, project.info.source_dir)
        self.config = project.config

    def analyze_file(self, ctx: FileContext) -> DeadCodeFileData | None:
        if ctx.has_parse_errors or ctx.tree is None:
            return None

        ignored = ctx.suppressions.is_disabled_for_file(DEAD_CODE) or is_generated_path(
            ctx.relative_path, self.config.generated
        )
        visitor = DeadCodeVisitor(
            path=ctx.path,
            suppressions=ctx.suppressions,
            resolver=self.resolver,
            config=self.config.dead_code,
            honor_declarations=not ignored,
        )
        visitor.visit(ctx.tree)

        return DeadCodeFileData(
            path=ctx.path,
            has_main=visitor.has_main or ctx.path.name == "__main__.py",
            dependencies=tuple(dict.fromkeys(visitor.dependencies)),
            classes=tuple(visitor.classes),
            functions=tuple(visitor.functions),
            methods=tuple(visitor.methods),
            used_identifiers=frozenset(visitor.used_identifiers),
            unused_variable_issues=tuple(visitor.unused_variable_issues),
        )
