"""
Entry point for running metaeval as a module.

Enables execution via:
    python -m metaeval [command] [options]

This is equivalent to running the installed CLI:
    metaeval [command] [options]

Examples:
    python -m metaeval --help
    python -m metaeval run --config examples/metaeval.yaml
    python -m metaeval validate --config metaeval.yaml --check-gold
"""

from metaeval.cli import app

if __name__ == "__main__":
    app()
