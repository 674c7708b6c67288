# File: crudgen/__main__.py
"""
CrudGen — Module entry point.

Allows running the generator directly via::

    python -m crudgen Post --fields "title:string,body:text"
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from crudgen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
