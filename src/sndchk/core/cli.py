"""CLI for sndchk."""

import logging
from typing import Optional

import typer

from sndchk.core import config, exceptions

logger = config.get_logger()
app = typer.Typer(
    help="Real-time audio diagnostics: xruns, USB transfer errors and IRQ spikes.",
    epilog="Without --watch, lists the available audio devices and exits.",
)


def version_check(version: bool) -> None:
    """Print the current version of sndchk and exit."""
    if version:
        typer.echo(f"sndchk version: {config.get_version()}")
        raise typer.Exit()


@app.command()
def main(
    device: Optional[int] = typer.Option(
        None,
        "-d",
        "--device",
        help="Monitor device pcmN. Defaults to the system default unit.",
        min=0,
    ),
    playback_only: bool = typer.Option(
        False,
        "-p",
        "--playback-only",
        help="Show only playback channels.",
    ),
    xruns_only: bool = typer.Option(
        False,
        "-x",
        "--xruns-only",
        help="Monitor only xruns (no USB errors, no IRQ monitoring).",
    ),
    usb_only: bool = typer.Option(
        False,
        "-u",
        "--usb-only",
        help="Monitor only USB errors and IRQ spikes (no xruns).",
    ),
    watch: bool = typer.Option(
        False,
        "-w",
        "--watch",
        help="Watch mode, start monitoring.",
    ),
    interval: float = typer.Option(
        1.0,
        "-i",
        "--interval",
        help="Seconds between two polls. Must be greater than 0.",
    ),
    threshold: float = typer.Option(
        1.5,
        "-t",
        "--threshold",
        help="IRQ spike threshold, as a multiplier of the calibrated baseline.",
    ),
    verbosity: bool = typer.Option(
        False,
        "-v",
        "--verbosity",
        help="Determines the level of verbosity. Use -v for DEBUG. "
        "Defaults to INFO if not included.",
    ),
    version: bool = typer.Option(
        False,
        "-V",
        "--version",
        help="Print the current version of sndchk and exit.",
        is_eager=True,
        callback=version_check,
    ),
) -> None:
    """Run the sndchk orchestrator with command line arguments."""
    from sndchk.core import orchestrator

    if xruns_only and usb_only:
        raise typer.BadParameter("--xruns-only and --usb-only are mutually exclusive.")

    log_level = logging.INFO
    if verbosity:
        log_level = logging.DEBUG
    logger.setLevel(log_level)

    logger.debug("Running sndchk. arguments given: %s", locals())
    try:
        orchestrator.run(
            device=device,
            playback_only=playback_only,
            show_xruns=not usb_only,
            show_usb=not xruns_only,
            watch=watch,
            interval=interval,
            threshold=threshold,
            verbosity=log_level,
        )
    except (exceptions.ConfigError, exceptions.DeviceNotFoundError):
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
