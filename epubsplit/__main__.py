"""Main entry point for EpubSplit CLI."""

import sys
import traceback
import click

from .cli import cli
from .error import error_handler, ErrorCategory


def main():
    """Main entry point with error handling."""
    try:
        cli(obj={})
    except Exception as e:
        # Handle any uncaught exceptions
        error = error_handler.handle(
            e,
            category=ErrorCategory.UNEXPECTED,
            recoverable=False
        )
        error_handler.display_error(error)

        if error_handler.debug:
            click.echo("\nTraceback:", err=True)
            traceback.print_exc()

        sys.exit(1)


if __name__ == "__main__":
    main()
