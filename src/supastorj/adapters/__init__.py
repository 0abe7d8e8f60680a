"""Service adapters for container and process backends.

This package gives every managed service the same lifecycle and
observation interface, whichever backend runs it.

Key Components:
    - ServiceAdapter: Protocol implemented by every adapter
    - ContainerAdapter: Services run as containers by docker compose
    - ProcessAdapter: Services run from source under systemd
    - DockerRuntime / SystemdRuntime: Transports the adapters drive
    - RawState, map_state, evaluate_health: Shared state decision table
    - decode_buffer, decode_chunk, LogStreamDecoder: Log protocol decoding
    - cpu_percent, memory_percent, calculate_stats: Resource usage

Example:
    >>> runtime = DockerRuntime(
    ...     compose_file=Path("docker-compose.yml"), project="stack"
    ... )
    >>> adapter = ContainerAdapter(
    ...     ServiceDescriptor.for_container("redis", "stack"), runtime
    ... )
    >>> await adapter.status()
    <ServiceState.RUNNING: 'running'>
"""

from ._container import ContainerAdapter
from ._docker import DEFAULT_SOCKET_PATH, DockerRuntime
from ._logstream import (
    HEADER_SIZE,
    STDERR,
    STDOUT,
    LogFrame,
    LogStreamDecoder,
    decode_buffer,
    decode_chunk,
    decode_log_records,
    encode_frame,
    is_multiplexed,
    iter_frames,
    split_plain_lines,
)
from ._models import (
    BackendKind,
    ContainerInfo,
    DiskCounters,
    HealthResult,
    LogOptions,
    LogRecord,
    NetworkCounters,
    PortMapping,
    ProductionService,
    ResourceStats,
    ServiceDescriptor,
    ServiceState,
)
from ._process import ProcessAdapter, process_descriptor
from ._protocol import ContainerRuntime, ProcessRuntime, ServiceAdapter
from ._resources import (
    calculate_cpu_percent,
    calculate_memory_usage,
    calculate_stats,
    cpu_percent,
    disk_counters,
    memory_percent,
    network_counters,
)
from ._state import ProbeResult, RawState, evaluate_health, map_state
from ._systemd import SystemdRuntime

__all__ = [
    "DEFAULT_SOCKET_PATH",
    "HEADER_SIZE",
    "STDERR",
    "STDOUT",
    "BackendKind",
    "ContainerAdapter",
    "ContainerInfo",
    "ContainerRuntime",
    "DiskCounters",
    "DockerRuntime",
    "HealthResult",
    "LogFrame",
    "LogOptions",
    "LogRecord",
    "LogStreamDecoder",
    "NetworkCounters",
    "PortMapping",
    "ProbeResult",
    "ProcessAdapter",
    "ProcessRuntime",
    "ProductionService",
    "RawState",
    "ResourceStats",
    "ServiceAdapter",
    "ServiceDescriptor",
    "ServiceState",
    "SystemdRuntime",
    "calculate_cpu_percent",
    "calculate_memory_usage",
    "calculate_stats",
    "cpu_percent",
    "decode_buffer",
    "decode_chunk",
    "decode_log_records",
    "disk_counters",
    "encode_frame",
    "evaluate_health",
    "is_multiplexed",
    "iter_frames",
    "map_state",
    "memory_percent",
    "network_counters",
    "process_descriptor",
    "split_plain_lines",
]
