from __future__ import annotations

import ast
import re
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from deadweight.analyzers.ast_utils import (
    ABSTRACT_DECORATORS,
    OVERRIDE_DECORATORS,
    DefinitionNode,
    FunctionNode,
    decorator_lines,
    decorator_names,
    dotted_name,
    has_decorator,
    is_empty_body,
)
from deadweight.analyzers.dead_code.file_data import DeadCodeSymbol
from deadweight.analyzers.dead_code.issue import DeadCodeIssue
from deadweight.analyzers.dependencies import ImportResolver
from deadweight.config import DeadCodeConfig
from deadweight.suppressions import DEAD_CODE, Suppressions
from deadweight.utils import matches_any

FrameKind = Literal["function", "lambda", "comprehension", "except"]

_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_IMPORT_FUNCTIONS = {"importlib.import_module", "import_module", "__import__"}


@dataclass(slots=True)
class DeclaredName:
    name: str
    line: int
    is_parameter: bool
    used: bool = False


@dataclass(slots=True)
class ScopeFrame:
    """
    A local scope: function, lambda, comprehension or `except ... as` clause.

    `loaded` collects names read inside this frame (or inside nested frames
    that did not declare them). Names are resolved when the frame is popped,
    so a read that precedes the binding in source order still counts.
    """

    kind: FrameKind
    owner: str | None
    treat_parameters_as_used: bool
    suppressed: bool
    declared: dict[str, DeclaredName] = field(default_factory=dict)
    loaded: set[str] = field(default_factory=set)
    external: set[str] = field(default_factory=set)


@dataclass(frozen=True, slots=True)
class _Container:
    kind: Literal["class", "function"]
    name: str
    suppressed: bool


class DeadCodeVisitor(ast.NodeVisitor):
    """
    Collects one file's dead-code facts in a single walk.

    Top-level classes and functions are declarations, every name read anywhere
    is a usage, imports are dependencies, and local variables are tracked per
    scope frame to find the ones that are never read.

    With `honor_declarations=False` (file-level ignore, generated files) the
    visitor still records dependencies and usages but declares nothing.
    """

    def __init__(
        self,
        *,
        path: Path,
        suppressions: Suppressions,
        resolver: ImportResolver,
        config: DeadCodeConfig | None = None,
        honor_declarations: bool = True,
    ) -> None:
        self.path = path
        self.suppressions = suppressions
        self.resolver = resolver
        self.config = config or DeadCodeConfig()
        self.honor_declarations = honor_declarations

        self.has_main = False
        self.dependencies: list[Path] = []
        self.classes: list[DeadCodeSymbol] = []
        self.functions: list[DeadCodeSymbol] = []
        self.methods: list[DeadCodeSymbol] = []
        self.used_identifiers: set[str] = set()
        self.unused_variable_issues: list[DeadCodeIssue] = []

        self._frames: list[ScopeFrame] = []
        self._containers: list[_Container] = []
        self._annotation_depth = 0

    # Declarations

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        for decorator in node.decorator_list:
            self.visit(decorator)
        for base in node.bases:
            self.visit(base)
        for keyword in node.keywords:
            self.visit(keyword)
        for type_param in getattr(node, "type_params", ()):
            self.visit(type_param)

        suppressed = self._declaration_suppressed(node)
        if not self._containers and self.honor_declarations and not suppressed and not self._is_kept(node):
            self.classes.append(DeadCodeSymbol(name=node.name, line=node.lineno, kind="class"))

        self._containers.append(_Container(kind="class", name=node.name, suppressed=suppressed))
        try:
            for stmt in node.body:
                self.visit(stmt)
        finally:
            self._containers.pop()

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._visit_function(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        self._visit_function(node)

    def _visit_function(self, node: FunctionNode) -> None:
        for decorator in node.decorator_list:
            self.visit(decorator)
        self._visit_argument_defaults(node.args)
        with self._annotations():
            for arg in _all_arguments(node.args):
                if arg.annotation is not None:
                    self.visit(arg.annotation)
            if node.returns is not None:
                self.visit(node.returns)

        parent = self._containers[-1] if self._containers else None
        suppressed = self._declaration_suppressed(node)
        in_class = parent is not None and parent.kind == "class"
        is_override = has_decorator(node, OVERRIDE_DECORATORS)
        is_abstract = has_decorator(node, ABSTRACT_DECORATORS)

        if parent is None:
            if node.name == "main":
                self.has_main = True
            if self.honor_declarations and not suppressed and not self._is_kept(node):
                self.functions.append(DeadCodeSymbol(name=node.name, line=node.lineno, kind="function"))
        elif in_class and self.honor_declarations and not suppressed and not (is_override or is_abstract):
            self.methods.append(DeadCodeSymbol(name=node.name, line=node.lineno, kind="method", owner=parent.name))

        # Parameters of stubs, overrides and protocol methods are dictated by a signature elsewhere.
        treat_parameters_as_used = (
            is_empty_body(node.body) or is_override or is_abstract or (in_class and _is_dunder(node.name))
        )
        owner = ".".join([*(c.name for c in self._containers), node.name])

        with self._frame("function", owner=owner, treat_parameters_as_used=treat_parameters_as_used, suppressed=suppressed):
            receiver = _receiver_argument(node) if in_class else None
            for arg in _all_arguments(node.args):
                self._declare(arg.arg, arg.lineno, is_parameter=True, mark_used=arg is receiver)

            self._containers.append(_Container(kind="function", name=node.name, suppressed=suppressed))
            try:
                for stmt in node.body:
                    self.visit(stmt)
            finally:
                self._containers.pop()

    def visit_Lambda(self, node: ast.Lambda) -> None:
        self._visit_argument_defaults(node.args)
        with self._frame("lambda", owner=self._current_owner(), treat_parameters_as_used=False):
            for arg in _all_arguments(node.args):
                self._declare(arg.arg, arg.lineno, is_parameter=True)
            self.visit(node.body)

    def visit_ListComp(self, node: ast.ListComp) -> None:
        self._visit_comprehension(node.generators, node.elt)

    def visit_SetComp(self, node: ast.SetComp) -> None:
        self._visit_comprehension(node.generators, node.elt)

    def visit_GeneratorExp(self, node: ast.GeneratorExp) -> None:
        self._visit_comprehension(node.generators, node.elt)

    def visit_DictComp(self, node: ast.DictComp) -> None:
        self._visit_comprehension(node.generators, node.key, node.value)

    def _visit_comprehension(self, generators: list[ast.comprehension], *results: ast.expr) -> None:
        # The first iterable is evaluated in the enclosing scope.
        self.visit(generators[0].iter)
        with self._frame("comprehension", owner=self._current_owner(), treat_parameters_as_used=False):
            for idx, generator in enumerate(generators):
                if idx > 0:
                    self.visit(generator.iter)
                self._declare_target(generator.target)
                for condition in generator.ifs:
                    self.visit(condition)
            for result in results:
                self.visit(result)

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> None:
        if node.type is not None:
            self.visit(node.type)
        if not node.name:
            for stmt in node.body:
                self.visit(stmt)
            return
        with self._frame("except", owner=self._current_owner(), treat_parameters_as_used=False):
            self._declare(node.name, node.lineno, is_parameter=False)
            for stmt in node.body:
                self.visit(stmt)

    # Names and usages

    def visit_Name(self, node: ast.Name) -> None:
        if isinstance(node.ctx, ast.Store):
            frame = self._binding_frame()
            if frame is not None and node.id not in frame.external:
                self._declare(node.id, node.lineno, is_parameter=False, frame=frame)
            return
        self.used_identifiers.add(node.id)
        if self._annotation_depth == 0:
            self._mark_used(node.id)

    def visit_Attribute(self, node: ast.Attribute) -> None:
        # `obj.attr` can reach any same-named declaration, never a local.
        self.used_identifiers.add(node.attr)
        self.visit(node.value)

    def visit_Constant(self, node: ast.Constant) -> None:
        if self._annotation_depth and isinstance(node.value, str):
            self.used_identifiers.update(_IDENTIFIER_RE.findall(node.value))

    def visit_AugAssign(self, node: ast.AugAssign) -> None:
        self.visit(node.value)
        self.visit(node.target)
        if isinstance(node.target, ast.Name):
            self.used_identifiers.add(node.target.id)
            self._mark_used(node.target.id)
        if not self._containers:
            self._collect_exports(node.target, node.value)

    def visit_Assign(self, node: ast.Assign) -> None:
        self.visit(node.value)
        for target in node.targets:
            self.visit(target)
            if not self._containers:
                self._collect_exports(target, node.value)

    def visit_AnnAssign(self, node: ast.AnnAssign) -> None:
        with self._annotations():
            self.visit(node.annotation)
        if node.value is not None:
            self.visit(node.value)
            if not self._containers:
                self._collect_exports(node.target, node.value)
        self.visit(node.target)

    def visit_Global(self, node: ast.Global) -> None:
        if self._frames:
            self._frames[-1].external.update(node.names)

    def visit_Nonlocal(self, node: ast.Nonlocal) -> None:
        if self._frames:
            frame = self._frames[-1]
            frame.external.update(node.names)
            # Writing through `nonlocal` keeps the outer binding alive.
            frame.loaded.update(node.names)

    # Imports and entry points

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            self.dependencies.extend(self.resolver.resolve_import(alias.name))

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        names = [alias.name for alias in node.names]
        self.dependencies.extend(self.resolver.resolve_from(self.path, node.module, node.level, names))
        self.used_identifiers.update(name for name in names if name != "*")

    def visit_Call(self, node: ast.Call) -> None:
        if dotted_name(node.func) in _IMPORT_FUNCTIONS and node.args:
            first = node.args[0]
            if isinstance(first, ast.Constant) and isinstance(first.value, str) and not first.value.startswith("."):
                self.dependencies.extend(self.resolver.resolve_import(first.value))
        self.generic_visit(node)

    def visit_If(self, node: ast.If) -> None:
        if not self._containers and _is_main_guard(node.test):
            self.has_main = True
        self.generic_visit(node)

    # Helpers

    @contextmanager
    def _annotations(self) -> Iterator[None]:
        self._annotation_depth += 1
        try:
            yield
        finally:
            self._annotation_depth -= 1

    @contextmanager
    def _frame(
        self,
        kind: FrameKind,
        *,
        owner: str | None,
        treat_parameters_as_used: bool,
        suppressed: bool = False,
    ) -> Iterator[ScopeFrame]:
        inherited = self._frames[-1].suppressed if self._frames else False
        inherited = inherited or any(c.suppressed for c in self._containers)
        frame = ScopeFrame(
            kind=kind,
            owner=owner,
            treat_parameters_as_used=treat_parameters_as_used,
            suppressed=suppressed or inherited,
        )
        self._frames.append(frame)
        try:
            yield frame
        finally:
            self._frames.pop()
            self._close_frame(frame)

    def _close_frame(self, frame: ScopeFrame) -> None:
        for name, declared in frame.declared.items():
            if declared.used or name in frame.loaded:
                continue
            if not self.honor_declarations or frame.suppressed:
                continue
            if self.suppressions.is_suppressed(DEAD_CODE, line=declared.line):
                continue
            self.unused_variable_issues.append(
                DeadCodeIssue(kind="unused_variable", path=self.path, name=name, line=declared.line, owner=frame.owner)
            )

        if self._frames:
            parent = self._frames[-1]
            parent.loaded.update(name for name in frame.loaded if name not in frame.declared)

    def _binding_frame(self) -> ScopeFrame | None:
        # Class bodies and module level hold attributes and globals, not locals.
        if not self._containers or self._containers[-1].kind == "class":
            return None
        for frame in reversed(self._frames):
            if frame.kind in ("function", "lambda"):
                return frame
        return None

    def _declare(
        self,
        name: str,
        line: int,
        *,
        is_parameter: bool,
        mark_used: bool = False,
        frame: ScopeFrame | None = None,
    ) -> None:
        if not name or name == "_":
            return
        target = frame if frame is not None else (self._frames[-1] if self._frames else None)
        if target is None or name in target.declared:
            return
        used = mark_used or name.startswith("_") or (is_parameter and target.treat_parameters_as_used)
        target.declared[name] = DeclaredName(name=name, line=line, is_parameter=is_parameter, used=used)

    def _declare_target(self, target: ast.expr) -> None:
        if isinstance(target, ast.Name):
            self._declare(target.id, target.lineno, is_parameter=False)
        elif isinstance(target, ast.Starred):
            self._declare_target(target.value)
        elif isinstance(target, (ast.Tuple, ast.List)):
            for element in target.elts:
                self._declare_target(element)
        else:
            self.visit(target)

    def _mark_used(self, name: str) -> None:
        if self._frames:
            self._frames[-1].loaded.add(name)

    def _current_owner(self) -> str | None:
        return self._frames[-1].owner if self._frames else None

    def _visit_argument_defaults(self, args: ast.arguments) -> None:
        for default in args.defaults:
            self.visit(default)
        for kw_default in args.kw_defaults:
            if kw_default is not None:
                self.visit(kw_default)

    def _declaration_suppressed(self, node: DefinitionNode) -> bool:
        if self._containers and self._containers[-1].suppressed:
            return True
        return any(
            self.suppressions.is_suppressed(DEAD_CODE, line=line) for line in (node.lineno, *decorator_lines(node))
        )

    def _is_kept(self, node: DefinitionNode) -> bool:
        if matches_any(node.name, self.config.keep_names):
            return True
        return any(matches_any(name, self.config.keep_decorators) for name in decorator_names(node))

    def _collect_exports(self, target: ast.expr, value: ast.expr) -> None:
        if isinstance(target, ast.Name) and target.id == "__all__":
            for node in ast.walk(value):
                if isinstance(node, ast.Constant) and isinstance(node.value, str):
                    self.used_identifiers.add(node.value)


def _all_arguments(args: ast.arguments) -> list[ast.arg]:
    out = [*args.posonlyargs, *args.args]
    if args.vararg is not None:
        out.append(args.vararg)
    out.extend(args.kwonlyargs)
    if args.kwarg is not None:
        out.append(args.kwarg)
    return out


def _receiver_argument(node: FunctionNode) -> ast.arg | None:
    if has_decorator(node, {"staticmethod"}):
        return None
    positional = [*node.args.posonlyargs, *node.args.args]
    return positional[0] if positional else None


def _is_dunder(name: str) -> bool:
    return len(name) > 4 and name.startswith("__") and name.endswith("__")


def _is_main_guard(test: ast.expr) -> bool:
    if not isinstance(test, ast.Compare) or len(test.ops) != 1 or not isinstance(test.ops[0], ast.Eq):
        return False
    sides = [test.left, test.comparators[0]]
    has_name = any(isinstance(side, ast.Name) and side.id == "__name__" for side in sides)
    has_main = any(isinstance(side, ast.Constant) and side.value == "__main__" for side in sides)
    return has_name and has_main
