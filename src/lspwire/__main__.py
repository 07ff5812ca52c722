"""CLI entry point for lspwire."""

import sys


def main() -> int:
    """Main entry point for lspwire CLI."""
    from lspwire.cli import run_cli

    return run_cli(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
