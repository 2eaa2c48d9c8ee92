from __future__ import annotations

import ast
import textwrap
from pathlib import Path
from typing import Any

from deadweight.analyzers.dead_code.visitor import DeadCodeVisitor
from deadweight.analyzers.dependencies import ImportResolver
from deadweight.config import DeadCodeConfig
from deadweight.suppressions import parse_suppressions


def _visit(tmp_path: Path, source: str, **kwargs: Any) -> DeadCodeVisitor:
    text = textwrap.dedent(source)
    visitor = DeadCodeVisitor(
        path=tmp_path / "mod.py",
        suppressions=parse_suppressions(text.splitlines()),
        resolver=ImportResolver(tmp_path, tmp_path),
        **kwargs,
    )
    visitor.visit(ast.parse(text))
    return visitor


def _unused(visitor: DeadCodeVisitor) -> list[tuple[str, int | None, str | None]]:
    return sorted((i.name, i.line, i.owner) for i in visitor.unused_variable_issues)


def test_unused_parameter_is_reported(tmp_path: Path) -> None:
    visitor = _visit(
        tmp_path,
        """\
        def f(x):
            return 1
        """,
    )

    assert _unused(visitor) == [("x", 1, "f")]


def test_parameters_of_stubs_overrides_and_dunders_count_as_used(tmp_path: Path) -> None:
    visitor = _visit(
        tmp_path,
        """\
        from abc import abstractmethod
        from typing import override


        def stub(x):
            ...


        def todo(x):
            raise NotImplementedError


        class Base:
            @abstractmethod
            def run(self, value):
                return None

            def plain(self):
                return 1

            @classmethod
            def build(cls):
                return 1

            @staticmethod
            def helper(value):
                return 1


        class Child(Base):
            @override
            def run(self, value):
                return 2

            def __exit__(self, exc_type, exc, tb):
                return None
        """,
    )

    assert _unused(visitor) == [("value", 26, "Base.helper")]


def test_unused_local_variable_reported_with_owner(tmp_path: Path) -> None:
    visitor = _visit(
        tmp_path,
        """\
        class Service:
            def handle(self):
                total = 1
                used = 2
                return used
        """,
    )

    assert _unused(visitor) == [("total", 3, "Service.handle")]


def test_read_before_binding_in_closure_counts(tmp_path: Path) -> None:
    visitor = _visit(
        tmp_path,
        """\
        def outer():
            def inner():
                return value
            value = 1
            return inner
        """,
    )

    assert _unused(visitor) == []


def test_nonlocal_and_global_writes(tmp_path: Path) -> None:
    visitor = _visit(
        tmp_path,
        """\
        counter = 0


        def bump():
            global counter
            counter = 1


        def make_counter():
            count = 0

            def step():
                nonlocal count
                count = 5

            return step
        """,
    )

    assert _unused(visitor) == []


def test_augmented_assignment_counts_as_use(tmp_path: Path) -> None:
    visitor = _visit(
        tmp_path,
        """\
        def f():
            total = 0
            total += 1
        """,
    )

    assert _unused(visitor) == []


def test_comprehension_lambda_and_except_frames(tmp_path: Path) -> None:
    visitor = _visit(
        tmp_path,
        """\
        def f(items):
            copied = [item for item in items]
            counted = [1 for entry in items]
            handler = lambda event: 1
            try:
                return copied, counted, handler
            except ValueError as exc:
                return None
        """,
    )

    assert _unused(visitor) == [("entry", 3, "f"), ("event", 4, "f"), ("exc", 7, "f")]


def test_wildcard_and_underscore_names_are_ignored(tmp_path: Path) -> None:
    visitor = _visit(
        tmp_path,
        """\
        def f(_unused, x):
            for _ in range(3):
                _scratch = x
            return x
        """,
    )

    assert _unused(visitor) == []


def test_declaration_level_suppressions(tmp_path: Path) -> None:
    visitor = _visit(
        tmp_path,
        """\
        def f():
            tmp = 1  # deadweight: disable=dead-code
            return 0


        # deadweight: disable-next-line=dead-code
        def g(x):
            scratch = 1
            return 1


        @staticmethod  # deadweight: disable=dead-code
        def h(y):
            return 1
        """,
    )

    assert _unused(visitor) == []
    assert [s.name for s in visitor.functions] == ["f"]


def test_module_level_names_are_not_locals(tmp_path: Path) -> None:
    visitor = _visit(
        tmp_path,
        """\
        CONSTANT = 1


        class Config:
            name = "x"
        """,
    )

    assert _unused(visitor) == []
    assert [s.name for s in visitor.classes] == ["Config"]


def test_declarations_methods_and_keep_lists(tmp_path: Path) -> None:
    visitor = _visit(
        tmp_path,
        """\
        from typing import override

        import app


        class Widget:
            def render(self):
                def nested():
                    return 1
                return nested()

            @override
            def update(self):
                return 1


        def helper():
            return 1


        async def fetch():
            return 1


        def test_widget():
            return 1


        @app.route("/")
        def index():
            return 1
        """,
    )

    assert [(s.name, s.line) for s in visitor.classes] == [("Widget", 6)]
    assert [s.name for s in visitor.functions] == ["helper", "fetch"]
    assert [(s.name, s.owner) for s in visitor.methods] == [("render", "Widget")]


def test_custom_keep_names(tmp_path: Path) -> None:
    visitor = _visit(
        tmp_path,
        """\
        def handle_event():
            return 1


        def other():
            return 1
        """,
        config=DeadCodeConfig(keep_names=("handle_*",)),
    )

    assert [s.name for s in visitor.functions] == ["other"]


def test_used_identifiers_cover_imports_exports_attributes_and_annotations(tmp_path: Path) -> None:
    visitor = _visit(
        tmp_path,
        """\
        from pkg.mod import helper as _alias
        __all__ = ["exported"]


        def f(obj: "Widget", count: Counter) -> None:
            obj.method(flag=True)
        """,
    )

    assert {"helper", "exported", "Widget", "Counter", "method", "obj"} <= visitor.used_identifiers
    assert "flag" not in visitor.used_identifiers
    assert "f" not in visitor.used_identifiers


def test_annotations_do_not_mark_locals_used(tmp_path: Path) -> None:
    visitor = _visit(
        tmp_path,
        """\
        def f():
            alias = int
            value: alias = 1
            return value
        """,
    )

    assert _unused(visitor) == [("alias", 2, "f")]


def test_has_main_detection(tmp_path: Path) -> None:
    assert _visit(tmp_path, "def main():\n    return 0\n").has_main
    assert _visit(tmp_path, "import sys\nif __name__ == '__main__':\n    sys.exit(0)\n").has_main
    assert not _visit(tmp_path, "def run():\n    return 0\n").has_main
    assert not _visit(tmp_path, "class App:\n    def main(self):\n        return 0\n").has_main


def test_dependencies_from_imports_and_import_module(tmp_path: Path) -> None:
    visitor = _visit(
        tmp_path,
        """\
        import importlib

        import pkg.a
        from . import b


        def load():
            return importlib.import_module("pkg.plugins.c")
        """,
    )

    assert tmp_path / "pkg" / "a.py" in visitor.dependencies
    assert tmp_path / "b.py" in visitor.dependencies
    assert tmp_path / "pkg" / "plugins" / "c.py" in visitor.dependencies


def test_ignored_file_keeps_dependencies_and_usages(tmp_path: Path) -> None:
    visitor = _visit(
        tmp_path,
        """\
        import pkg.a


        class Generated:
            def method(self, x):
                unused = 1
                return helper()
        """,
        honor_declarations=False,
    )

    assert visitor.classes == []
    assert visitor.functions == []
    assert visitor.methods == []
    assert visitor.unused_variable_issues == []
    assert tmp_path / "pkg" / "a.py" in visitor.dependencies
    assert "helper" in visitor.used_identifiers
