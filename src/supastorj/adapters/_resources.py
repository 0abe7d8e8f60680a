# pyright: reportAny=false, reportExplicitAny=false
"""Resource usage calculation from runtime counter snapshots.

Counters are cumulative, so CPU usage is derived from the difference
between two consecutive samples. Nothing here retains history between
calls.
"""

from __future__ import annotations

from typing import Any

from ._models import DiskCounters, NetworkCounters, ResourceStats


def cpu_percent(cpu_delta: float, system_delta: float, num_cpus: int) -> float:
    """Compute CPU usage from counter deltas.

    Args:
        cpu_delta: Change in the service's CPU time between samples.
        system_delta: Change in total system CPU time between samples.
        num_cpus: Number of CPUs available to the service.

    Returns:
        ``cpu_delta / system_delta * num_cpus * 100``, or 0.0 when either
        delta is not positive.
    """
    if cpu_delta <= 0 or system_delta <= 0:
        return 0.0
    return (cpu_delta / system_delta) * num_cpus * 100.0


def memory_percent(used: int, limit: int) -> float:
    """Return memory usage as a percentage of the limit, 0.0 without a limit."""
    if limit <= 0:
        return 0.0
    return used / limit * 100.0


def _online_cpus(cpu_stats: dict[str, Any]) -> int:
    online = cpu_stats.get("online_cpus")
    if isinstance(online, int) and online > 0:
        return online
    percpu = (cpu_stats.get("cpu_usage") or {}).get("percpu_usage")
    if percpu:
        return len(percpu)
    return 1


def calculate_cpu_percent(stats: dict[str, Any]) -> float:
    """Compute CPU usage from a runtime stats document.

    Reads ``cpu_stats`` (current sample) and ``precpu_stats`` (previous
    sample). Missing counters count as zero.

    Args:
        stats: A decoded ``/containers/{id}/stats`` document.

    Returns:
        CPU usage in percent.
    """
    current = stats.get("cpu_stats") or {}
    previous = stats.get("precpu_stats") or {}

    cpu_delta = (current.get("cpu_usage") or {}).get("total_usage", 0) - (
        previous.get("cpu_usage") or {}
    ).get("total_usage", 0)
    system_delta = current.get("system_cpu_usage", 0) - previous.get(
        "system_cpu_usage", 0
    )
    return cpu_percent(cpu_delta, system_delta, _online_cpus(current))


def calculate_memory_usage(stats: dict[str, Any]) -> tuple[int, int, float]:
    """Return ``(used, limit, percent)`` from a runtime stats document."""
    memory = stats.get("memory_stats") or {}
    used = int(memory.get("usage") or 0)
    limit = int(memory.get("limit") or 0)
    return used, limit, memory_percent(used, limit)


def network_counters(stats: dict[str, Any]) -> NetworkCounters:
    """Sum received and transmitted bytes across all interfaces."""
    networks = stats.get("networks") or {}
    rx = sum(int(iface.get("rx_bytes") or 0) for iface in networks.values())
    tx = sum(int(iface.get("tx_bytes") or 0) for iface in networks.values())
    return NetworkCounters(rx_bytes=rx, tx_bytes=tx)


def disk_counters(stats: dict[str, Any]) -> DiskCounters:
    """Sum block I/O read and write bytes across all devices."""
    entries = (stats.get("blkio_stats") or {}).get("io_service_bytes_recursive") or []
    read = 0
    write = 0
    for entry in entries:
        op = str(entry.get("op", "")).lower()
        if op == "read":
            read += int(entry.get("value") or 0)
        elif op == "write":
            write += int(entry.get("value") or 0)
    return DiskCounters(read_bytes=read, write_bytes=write)


def calculate_stats(stats: dict[str, Any]) -> ResourceStats:
    """Build ResourceStats from a runtime stats document."""
    used, limit, percent = calculate_memory_usage(stats)
    return ResourceStats(
        cpu_percent=calculate_cpu_percent(stats),
        memory_used=used,
        memory_limit=limit,
        memory_percent=percent,
        network=network_counters(stats),
        disk=disk_counters(stats),
    )
