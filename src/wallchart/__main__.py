"""Entry point for running wallchart as a module.

This allows the CLI to be invoked with ``python -m wallchart``.
"""

from .cli import cli

if __name__ == "__main__":  # pragma: no cover
    cli()
