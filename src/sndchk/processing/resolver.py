"""Resolve a logical audio device to the USB path and interrupt line serving it."""

from typing import Callable, List, Optional

from sndchk.core import config, exceptions, models
from sndchk.io.readers import parsers, readers

logger = config.get_logger()

USB_AUDIO_PARENT = "uaudio"


class DeviceResolver:
    """Walks the sysctl tree and vmstat output for a pcm unit.

    Resolution never fails for a device that exists: any gap after the pcm
    parent lookup degrades the descriptor (non-USB, or USB without controller
    and IRQ) instead of raising.
    """

    def __init__(
        self,
        properties: Optional[readers.PropertyStore] = None,
        run: readers.CommandRunner = readers.run_command,
        sndstat: Callable[[], str] = readers.read_sndstat,
    ) -> None:
        """Initialize the resolver.

        Args:
            properties: The sysctl tree. Defaults to the system one.
            run: Runs a utility and returns its output.
            sndstat: Returns the device enumeration text.
        """
        self.properties = (
            properties if properties is not None else readers.SysctlPropertyStore()
        )
        self.run = run
        self.sndstat = sndstat

    def default_unit(self) -> int:
        """Returns the system default pcm unit, 0 if it cannot be read."""
        try:
            unit = self.properties.get_int("hw.snd.default_unit")
        except (exceptions.ResolutionGapError, exceptions.ParseError) as e:
            logger.debug("Default unit unavailable, using 0: %s", e)
            return 0
        return unit if unit >= 0 else 0

    def list_devices(self) -> List[models.DeviceDescriptor]:
        """Resolves every device of the enumeration."""
        default = self.default_unit()
        return [
            self._describe(unit, description, is_default=unit == default)
            for unit, description in parsers.parse_sndstat(self.sndstat())
        ]

    def resolve(self, unit: int) -> models.DeviceDescriptor:
        """Builds the descriptor of one pcm unit.

        Args:
            unit: The pcm unit number.

        Returns:
            The descriptor, non-USB when the device is not USB backed.

        Raises:
            DeviceNotFoundError: If the unit is not in the device enumeration.
        """
        for candidate, description in parsers.parse_sndstat(self.sndstat()):
            if candidate == unit:
                return self._describe(
                    unit, description, is_default=unit == self.default_unit()
                )
        raise exceptions.DeviceNotFoundError(f"device pcm{unit} not found")

    def _describe(
        self, unit: int, description: str, is_default: bool
    ) -> models.DeviceDescriptor:
        ugen = self.find_ugen(unit)
        if ugen is None:
            return models.DeviceDescriptor(
                unit=unit, description=description, is_default=is_default
            )

        controller = self.find_controller(ugen)
        irq = self.find_irq(controller) if controller is not None else None
        return models.DeviceDescriptor(
            unit=unit,
            description=description,
            is_default=is_default,
            is_usb=True,
            ugen=ugen,
            controller=controller,
            irq=irq,
        )

    def find_ugen(self, unit: int) -> Optional[str]:
        """Finds the USB device identifier of a pcm unit.

        Args:
            unit: The pcm unit number.

        Returns:
            The identifier in bus.port form, or None for devices that are not
            USB audio, or whose location cannot be parsed.
        """
        try:
            parent = self.properties.get_string(f"dev.pcm.{unit}.%parent")
        except exceptions.ResolutionGapError as e:
            logger.debug("pcm%d has no parent: %s", unit, e)
            return None

        index = parent[len(USB_AUDIO_PARENT) :]
        if not parent.startswith(USB_AUDIO_PARENT) or not index.isdigit():
            logger.debug("pcm%d is served by %s, not USB audio.", unit, parent)
            return None

        try:
            location = self.properties.get_string(f"dev.uaudio.{index}.%location")
            return parsers.parse_ugen_location(location)
        except (exceptions.ResolutionGapError, exceptions.ParseError) as e:
            logger.warning("pcm%d: USB device not found, %s", unit, e)
            return None

    def find_controller(self, ugen: str) -> Optional[str]:
        """Finds the host controller owning the bus of a USB device, e.g. 'xhci0'."""
        bus = ugen.split(".", 1)[0]
        try:
            return self.properties.get_string(f"dev.usbus.{bus}.%parent")
        except exceptions.ResolutionGapError as e:
            logger.warning("ugen%s: USB controller not found, %s", ugen, e)
            return None

    def find_irq(self, controller: str) -> Optional[str]:
        """Finds the interrupt line of a controller, e.g. 'irq64'."""
        irq = parsers.find_interrupt(self.run(["vmstat", "-i"]), controller)
        if irq is None:
            logger.warning("%s: no interrupt line found.", controller)
        return irq
