from carboncli.config import Config as Config
from carboncli.config import load_config


def main():
    """CLI entry point: `uv run carbon-cli`"""
    import sys

    from carboncli.cli import run

    sys.exit(run())
