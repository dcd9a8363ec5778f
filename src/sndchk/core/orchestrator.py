"""Python based runner."""

import contextlib
import logging
import signal
import threading
from typing import Dict, Iterator, List, Optional, Union

import pydantic

from sndchk.core import config, exceptions, models
from sndchk.io.writers import writers
from sndchk.processing import baseline, collectors, differ, resolver

logger = config.get_logger()


class CancellationToken:
    """Tells the watch loop to stop, and wakes it up from its sleep."""

    def __init__(self) -> None:
        """Initialize a token that is not cancelled."""
        self._event = threading.Event()

    def cancel(self) -> None:
        """Requests the loop to stop."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Whether cancellation was requested."""
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleeps for timeout seconds or until cancelled.

        Returns:
            True if the token was cancelled.
        """
        return self._event.wait(timeout)


class WatchLoop:
    """Polls the enabled metric groups of one device and prints what changed.

    The previous snapshot of every group is owned by the loop and replaced after
    each poll. IRQ rates additionally feed a SpikeDetector.
    """

    def __init__(
        self,
        watch_config: models.WatchConfig,
        device: models.DeviceDescriptor,
        cancel: CancellationToken,
        xrun_collector: Optional[collectors.XrunCollector] = None,
        usb_collector: Optional[collectors.UsbErrorCollector] = None,
        irq_collector: Optional[collectors.IrqCollector] = None,
        writer: Optional[writers.EventWriter] = None,
    ) -> None:
        """Initialize the loop.

        Args:
            watch_config: The monitoring options.
            device: The resolved device to monitor.
            cancel: Stops the loop once cancelled.
            xrun_collector: Source of xrun snapshots.
            usb_collector: Source of USB error snapshots.
            irq_collector: Source of cumulative interrupt counts.
            writer: Prints the events.
        """
        self.config = watch_config
        self.device = device
        self.cancel = cancel
        self.xrun_collector = xrun_collector or collectors.XrunCollector()
        self.usb_collector = usb_collector or collectors.UsbErrorCollector()
        self.irq_collector = irq_collector or collectors.IrqCollector()
        self.writer = writer or writers.EventWriter()

        self.show_xruns = watch_config.show_xruns
        self.show_usb = watch_config.show_usb and device.is_usb
        self.show_irq = self.show_usb and device.irq_monitoring

        self.previous_xruns: Dict[str, int] = {}
        self.previous_usb: Optional[models.UsbErrorSample] = None
        self.previous_irq: Optional[int] = None
        self.detector: Optional[baseline.SpikeDetector] = None
        if self.show_irq and device.controller is not None:
            self.detector = baseline.SpikeDetector(
                controller=device.controller,
                threshold=watch_config.threshold,
                unit=_rate_unit(watch_config.interval),
            )

    def run(self) -> None:
        """Prints the initial state, then polls until cancelled."""
        self.writer.header(self.device, show_usb=self.show_usb)
        self.writer.write(self.start())

        while not self.cancel.cancelled:
            if self.cancel.wait(self.config.interval):
                break
            self.writer.write(self.poll())

        self.writer.line()
        self.writer.line("Monitoring stopped.")

    def start(self) -> List[models.Event]:
        """Takes the first snapshot of every enabled group.

        Returns:
            Absolute initial values, and notices about degraded groups.
        """
        events: List[models.Event] = []

        if self.show_xruns:
            self.previous_xruns = self.xrun_collector.collect(
                self.device.unit, self.config.playback_only
            )
            events.append(
                models.CounterSnapshot(
                    label="Initial xruns", values=self.previous_xruns
                )
            )

        if self.show_usb:
            events.append(self._initial_usb())
            if self.show_irq:
                self.previous_irq = self._collect_irq()
                events.append(models.Notice(message="Initial IRQ: calibrating..."))
            else:
                events.append(_irq_unavailable(self.device))
        return events

    def poll(self) -> List[models.Event]:
        """Collects every enabled group once and diffs it against the previous poll.

        Returns:
            The events of this poll, empty when nothing changed.
        """
        events: List[models.Event] = []
        if self.show_xruns:
            events.extend(self._poll_xruns())
        if self.show_usb:
            events.extend(self._poll_usb())
        if self.show_irq:
            events.extend(self._poll_irq())
        return events

    def _poll_xruns(self) -> List[models.Event]:
        current = self.xrun_collector.collect(
            self.device.unit, self.config.playback_only
        )
        events: List[models.Event] = list(
            differ.diff_xruns(self.previous_xruns, current)
        )
        self.previous_xruns = current
        return events

    def _initial_usb(self) -> models.Event:
        try:
            self.previous_usb = self._collect_usb()
        except exceptions.DeviceUnavailableError:
            return _usb_unavailable()
        return _usb_snapshot("Initial USB", self.previous_usb)

    def _poll_usb(self) -> List[models.Event]:
        try:
            current = self._collect_usb()
        except exceptions.DeviceUnavailableError:
            return [_usb_unavailable()]

        if self.previous_usb is None:
            events: List[models.Event] = [_usb_snapshot("USB", current)]
        else:
            events = list(differ.diff_usb(self.previous_usb, current))
        self.previous_usb = current
        return events

    def _collect_usb(self) -> models.UsbErrorSample:
        return self.usb_collector.collect(self.device.ugen)  # type: ignore[arg-type] # protected by show_usb

    def _collect_irq(self) -> Optional[int]:
        count = self.irq_collector.collect(self.device.irq)  # type: ignore[arg-type] # protected by show_irq
        if count == 0:
            logger.debug("%s: no interrupt count this poll.", self.device.irq)
            return None
        return count

    def _poll_irq(self) -> List[models.Event]:
        current = self._collect_irq()
        if current is None:
            return []
        previous, self.previous_irq = self.previous_irq, current
        if previous is None or self.detector is None:
            return []

        event = self.detector.update(baseline.interrupt_rate(previous, current))
        return [event] if event is not None else []


def _rate_unit(interval: float) -> str:
    """Unit of one rate sample, which covers one poll interval."""
    if interval == 1:
        return "/s"
    return f"/{interval:g}s"


def _usb_snapshot(label: str, sample: models.UsbErrorSample) -> models.CounterSnapshot:
    values = {
        models.USB_COUNTER_SHORT_NAMES[field]: getattr(sample, field)
        for field in models.USB_COUNTER_SHORT_NAMES
    }
    return models.CounterSnapshot(label=label, values=values)


def _irq_unavailable(device: models.DeviceDescriptor) -> models.Notice:
    if device.controller is None:
        reason = "USB controller not found"
    else:
        reason = f"no interrupt line found for {device.controller}"
    return models.Notice(message=f"IRQ monitoring disabled: {reason}", level="warning")


def _usb_unavailable() -> models.Notice:
    return models.Notice(
        message="USB device disconnected or not responding",
        level="warning",
    )


def watch_loop(
    watch_config: models.WatchConfig,
    device: models.DeviceDescriptor,
    cancel: CancellationToken,
) -> None:
    """Monitors a device until the token is cancelled.

    Args:
        watch_config: The monitoring options.
        device: The resolved device to monitor.
        cancel: Stops the loop once cancelled, also during the interval sleep.
    """
    WatchLoop(watch_config, device, cancel).run()


@contextlib.contextmanager
def _cancel_on_signals(cancel: CancellationToken) -> Iterator[None]:
    """Cancels the token on SIGINT and SIGTERM while the context is active."""

    def _handler(signum: int, frame: object) -> None:
        logger.debug("Received signal %d, stopping.", signum)
        cancel.cancel()

    previous = {
        signum: signal.signal(signum, _handler)
        for signum in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def run(
    device: Optional[int] = None,
    playback_only: bool = False,
    show_xruns: bool = True,
    show_usb: bool = True,
    watch: bool = False,
    interval: float = 1.0,
    threshold: float = 1.5,
    verbosity: int = logging.WARNING,
    device_resolver: Optional[resolver.DeviceResolver] = None,
) -> Union[List[models.DeviceDescriptor], models.DeviceDescriptor]:
    """Lists the audio devices, or monitors one of them.

    Without watch, every device of the enumeration is resolved and printed. With
    watch, the selected device is resolved once and monitored until SIGINT or
    SIGTERM is received.

    Args:
        device: The pcm unit to monitor. Defaults to the system default unit.
        playback_only: Only monitor playback channels.
        show_xruns: Monitor buffer xruns.
        show_usb: Monitor USB transfer errors and the controller IRQ rate.
        watch: Monitor instead of listing the devices.
        interval: Seconds between two polls, must be > 0.
        threshold: Multiplier of the IRQ baseline above which a rate is a spike.
        verbosity: The logging level for the logger.
        device_resolver: Resolves devices. Defaults to the system one.

    Returns:
        The listed devices, or the monitored device once monitoring stopped.

    Raises:
        ConfigError: If the options are invalid.
        DeviceNotFoundError: If the device to monitor does not exist.
    """
    logger.setLevel(verbosity)

    try:
        watch_config = models.WatchConfig(
            device=device,
            playback_only=playback_only,
            show_xruns=show_xruns,
            show_usb=show_usb,
            interval=interval,
            threshold=threshold,
        )
    except pydantic.ValidationError as e:
        raise exceptions.ConfigError(f"Invalid options: {e}") from e

    device_resolver = device_resolver or resolver.DeviceResolver()

    if not watch:
        devices = device_resolver.list_devices()
        writers.print_devices(devices)
        return devices

    unit = (
        watch_config.device
        if watch_config.device is not None
        else device_resolver.default_unit()
    )
    target = device_resolver.resolve(unit)
    logger.debug("Resolved %s: %s", target.name, target.resolution.value)

    if watch_config.show_usb and not target.is_usb:
        logger.warning(
            "Could not find USB device for %s, USB monitoring disabled.", target.name
        )
        watch_config = watch_config.model_copy(update={"show_usb": False})

    cancel = CancellationToken()
    with _cancel_on_signals(cancel):
        watch_loop(watch_config, target, cancel)
    logger.info("Monitoring of %s completed successfully.", target.name)
    return target
