"""Compare two snapshots of the same metric and report what changed."""

from typing import List, Mapping

from sndchk.core import models


def diff_xruns(
    previous: Mapping[str, int], current: Mapping[str, int]
) -> List[models.CounterChange]:
    """Compares two xrun snapshots.

    Only channels present in the current snapshot are considered. A channel absent
    from the previous snapshot counts as 0 there, so a channel that appears with
    zero xruns is not reported.

    Args:
        previous: Channel name to xrun count of the previous poll.
        current: Channel name to xrun count of this poll.

    Returns:
        One change per channel whose count differs, in current snapshot order.
    """
    return [
        models.CounterChange(
            metric="xruns", name=name, old=previous.get(name, 0), new=count
        )
        for name, count in current.items()
        if count != previous.get(name, 0)
    ]


def diff_usb(
    previous: models.UsbErrorSample, current: models.UsbErrorSample
) -> List[models.CounterChange]:
    """Compares the four USB failure counters field by field."""
    old_values = previous.as_labels()
    return [
        models.CounterChange(metric="usb", name=label, old=old_values[label], new=new)
        for label, new in current.as_labels().items()
        if new != old_values[label]
    ]
