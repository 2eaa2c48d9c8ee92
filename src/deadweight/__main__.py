from __future__ import annotations

from deadweight.cli import app


def main() -> None:
    # Usage lines name `deadweight`, not `__main__.py`.
    app(prog_name="deadweight")


if __name__ == "__main__":
    main()
