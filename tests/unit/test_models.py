"""Test the internal data model."""

import pydantic
import pytest

from sndchk.core import models


def test_device_descriptor_non_usb() -> None:
    """Test the descriptor of an onboard device."""
    device = models.DeviceDescriptor(unit=0, description="<Realtek ALC892>")

    assert device.name == "pcm0"
    assert device.resolution == models.Resolution.non_usb
    assert not device.irq_monitoring


@pytest.mark.parametrize(
    "fields",
    [
        {"is_usb": True},
        {"ugen": "0.4"},
        {"controller": "xhci0"},
        {"is_usb": True, "ugen": "0.4", "irq": "irq64"},
        {"unit": -1},
    ],
)
def test_device_descriptor_inconsistent(fields: dict) -> None:
    """Test that inconsistent USB path fields are rejected."""
    with pytest.raises(pydantic.ValidationError):
        models.DeviceDescriptor(**{"unit": 6, **fields})


def test_device_descriptor_frozen() -> None:
    """Test that a descriptor cannot be mutated after resolution."""
    device = models.DeviceDescriptor(unit=6, is_usb=True, ugen="0.4")

    with pytest.raises(pydantic.ValidationError):
        device.ugen = "1.2"  # type: ignore[misc]


def test_channel_sample_validation() -> None:
    """Test that channel samples need a name and a non-negative count."""
    with pytest.raises(pydantic.ValidationError):
        models.ChannelXrunSample(name="", xruns=0)
    with pytest.raises(pydantic.ValidationError):
        models.ChannelXrunSample(name="pcm6.play.0", xruns=-1)


def test_usb_sample_labels() -> None:
    """Test that counters are exposed under their usbconfig labels."""
    sample = models.UsbErrorSample(control=1, isochronous=2, bulk=3, interrupt=4)

    assert sample.as_labels() == {
        "UE_CONTROL_FAIL": 1,
        "UE_ISOCHRONOUS_FAIL": 2,
        "UE_BULK_FAIL": 3,
        "UE_INTERRUPT_FAIL": 4,
    }


@pytest.mark.parametrize("interval", [0, -1.0, float("inf"), float("nan")])
def test_watch_config_interval(interval: float) -> None:
    """Test that the interval must be a finite positive number."""
    with pytest.raises(pydantic.ValidationError):
        models.WatchConfig(interval=interval)


def test_watch_config_threshold_not_enforced() -> None:
    """Test that thresholds below 1 are accepted."""
    assert models.WatchConfig(threshold=0.5).threshold == 0.5


@pytest.mark.parametrize("threshold", [float("inf"), float("-inf"), float("nan")])
def test_watch_config_threshold_finite(threshold: float) -> None:
    """Test that a non-finite threshold is rejected."""
    with pytest.raises(pydantic.ValidationError):
        models.WatchConfig(threshold=threshold)


def test_event_is_abstract() -> None:
    """Test that only concrete events can be built."""
    with pytest.raises(TypeError):
        models.Event()  # type: ignore[abstract]


def test_baseline_state() -> None:
    """Test that the baseline is established after all calibration samples."""
    assert not models.BaselineState(samples=9, mean=10).established
    assert models.BaselineState(samples=10, mean=10).established
    with pytest.raises(pydantic.ValidationError):
        models.BaselineState(samples=11, mean=10)


def test_event_descriptions() -> None:
    """Test the text of the events without counter changes."""
    assert (
        models.CounterSnapshot(
            label="Initial xruns", values={"pcm6.play.0": 0, "pcm6.record.0": 3}
        ).describe()
        == "Initial xruns: pcm6.play.0=0 pcm6.record.0=3"
    )
    assert (
        models.BaselineEstablished(controller="xhci0", mean=7592).describe()
        == "xhci0 baseline: 7592/s"
    )
    assert models.Notice(message="Initial IRQ: calibrating...").describe() == (
        "Initial IRQ: calibrating..."
    )


def test_irq_spike_needs_baseline() -> None:
    """Test that a spike cannot be built against a zero baseline."""
    with pytest.raises(pydantic.ValidationError):
        models.IrqSpike(controller="xhci0", baseline=0, rate=10)
