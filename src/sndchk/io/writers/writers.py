"""Module containing the output of monitoring events and device listings."""

import datetime
from typing import Callable, Iterable, Optional, Sequence

import typer
from rich import console, table

from sndchk.core import config, models

logger = config.get_logger()

SEPARATOR = "-" * 40

Clock = Callable[[], datetime.datetime]


class EventWriter:
    """Prints events to stdout, one timestamped line each."""

    def __init__(
        self,
        echo: Callable[[str], None] = typer.echo,
        clock: Clock = datetime.datetime.now,
    ) -> None:
        """Initialize the writer.

        Args:
            echo: Writes one line of output.
            clock: Returns the current local time.
        """
        self.echo = echo
        self.clock = clock

    def timestamp(self) -> str:
        """Returns the current time as HH:MM:SS."""
        return self.clock().strftime("%H:%M:%S")

    def write(self, events: Iterable[models.Event]) -> None:
        """Prints every event with the same timestamp, warnings marked as such."""
        stamp = self.timestamp()
        for event in events:
            text = event.describe()
            if isinstance(event, models.Notice) and event.level == "warning":
                text = f"WARNING: {text}"
            self.echo(f"[{stamp}] {text}")

    def line(self, text: str = "") -> None:
        """Prints a line without timestamp."""
        self.echo(text)

    def header(self, device: models.DeviceDescriptor, show_usb: bool) -> None:
        """Prints the identity of the monitored device."""
        self.echo(f"Monitoring {device.name}: {device.description}")
        if device.is_usb and show_usb:
            self.echo(f"USB device: ugen{device.ugen}")
            if device.controller is not None:
                irq = device.irq if device.irq is not None else "no IRQ"
                self.echo(f"USB controller: {device.controller} ({irq})")
        self.echo(SEPARATOR)


def print_devices(
    devices: Sequence[models.DeviceDescriptor],
    output: Optional[console.Console] = None,
) -> None:
    """Prints the available audio devices as a table.

    Args:
        devices: The resolved devices.
        output: The console to print to. Defaults to stdout.
    """
    output = output if output is not None else console.Console()
    logger.debug("Listing %d audio devices.", len(devices))
    if not devices:
        output.print("No audio devices found.")
        return

    device_table = table.Table(title="Available audio devices")
    device_table.add_column("Device")
    device_table.add_column("Default")
    device_table.add_column("USB")
    device_table.add_column("Controller")
    device_table.add_column("Description")
    for device in devices:
        device_table.add_row(
            device.name,
            "yes" if device.is_default else "",
            f"ugen{device.ugen}" if device.is_usb else "",
            " ".join(filter(None, [device.controller, device.irq])),
            device.description,
        )
    output.print(device_table)
    output.print("Use --watch to start monitoring, --help for all options.")
