"""Main function for telereport."""

from telereport.core import cli


def run_main() -> None:
    """Main entry point to telereport."""
    cli.app()


if __name__ == "__main__":
    cli.app()
