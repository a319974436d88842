"""
Overall health verdict derived from a single snapshot.

The verdict is recomputed on every read and never stored, so a change to
the classification rule applies to the whole history at once.
"""

from enum import Enum
from typing import Iterable

from statuswatch.snapshots import ProbeResult, Snapshot


class OverallStatus(str, Enum):
    UP = "up"
    PARTIALLY_UP = "partiallyUp"
    DOWN = "down"


def is_successful_ping(result: ProbeResult) -> bool:
    return 200 <= result.status_code < 300


def all_pings_successful(snapshot: Snapshot) -> bool:
    return all(is_successful_ping(r) for r in snapshot.ping_results)


def aggregate(snapshot: Snapshot) -> OverallStatus:
    """Classify a snapshot as up, partiallyUp or down.

    ``up`` needs every ping in 2xx and a successful log check, ``down``
    means both conditions fail, anything in between is ``partiallyUp``.
    A snapshot without ping results counts as all pings successful.
    """
    pings_ok = all_pings_successful(snapshot)
    log_ok = snapshot.log_check.success

    if pings_ok and log_ok:
        return OverallStatus.UP
    if pings_ok or log_ok:
        return OverallStatus.PARTIALLY_UP
    return OverallStatus.DOWN


def uptime_percentage(snapshots: Iterable[Snapshot]) -> float:
    """Share of snapshots (0-100) whose pings were all successful."""
    snapshots = list(snapshots)
    if not snapshots:
        return 0.0
    healthy = sum(1 for s in snapshots if all_pings_successful(s))
    return healthy / len(snapshots) * 100
