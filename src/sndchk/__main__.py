"""Main function for sndchk."""

from sndchk.core import cli


def run_main() -> None:
    """Main entry point to sndchk."""
    cli.app()


if __name__ == "__main__":
    cli.app()
