# pyright: reportAny=false, reportExplicitAny=false
"""Container runtime client.

Talks to the Docker Engine API over its unix socket with httpx, and drives
``docker compose`` (v2 plugin, falling back to the v1 ``docker-compose``
binary) as a subprocess for lifecycle commands.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Final, Self, final

import anyio
import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from supastorj.exceptions import (
    BackendCommandFailedError,
    BackendUnavailableError,
    ServiceNotFoundError,
)
from supastorj.utils import create_null_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence
    from datetime import datetime
    from pathlib import Path
    from types import TracebackType

    from structlog.typing import FilteringBoundLogger

DEFAULT_SOCKET_PATH: Final = "/var/run/docker.sock"
_API_BASE: Final = "http://docker"
_REQUEST_TIMEOUT: Final = 30.0

COMPOSE_V2: Final = ("docker", "compose")
COMPOSE_V1: Final = ("docker-compose",)


def _log_params(
    *,
    tail: int,
    timestamps: bool,
    follow: bool,
    since: datetime | None = None,
    until: datetime | None = None,
) -> dict[str, str]:
    params = {
        "stdout": "1",
        "stderr": "1",
        "tail": str(tail),
        "timestamps": "1" if timestamps else "0",
        "follow": "1" if follow else "0",
    }
    if since is not None:
        params["since"] = str(int(since.timestamp()))
    if until is not None:
        params["until"] = str(int(until.timestamp()))
    return params


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(body, dict) and "message" in body:
        return str(body["message"])
    return response.text.strip()


@retry(
    retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
    reraise=True,
)
async def _send(client: httpx.AsyncClient, request: httpx.Request) -> httpx.Response:
    """Send a non-streaming API request with retry on connection failures."""
    return await client.send(request)


@final
class DockerRuntime:
    """Container runtime backed by the Docker Engine API and docker compose.

    One instance is shared by every container adapter of a registry; it
    holds no per-service state.

    Attributes:
        compose_file: Compose manifest passed to every compose command.
        project: Compose project name.
    """

    __slots__ = (
        "_client",
        "_compose_command",
        "_logger",
        "_socket_path",
        "compose_file",
        "project",
    )

    def __init__(
        self,
        *,
        compose_file: Path,
        project: str,
        socket_path: str = DEFAULT_SOCKET_PATH,
        client: httpx.AsyncClient | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the runtime client.

        Args:
            compose_file: Compose manifest path.
            project: Compose project name.
            socket_path: Path of the Docker Engine unix socket.
            client: Preconfigured HTTP client, mainly for tests.
            logger: Logger for runtime events.
        """
        self.compose_file = compose_file
        self.project = project
        self._socket_path = socket_path
        self._client = client or httpx.AsyncClient(
            transport=httpx.AsyncHTTPTransport(uds=socket_path),
            base_url=_API_BASE,
            timeout=_REQUEST_TIMEOUT,
        )
        self._logger = logger or create_null_logger()
        self._compose_command: tuple[str, ...] | None = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    # -------------------------------------------------------------------------
    # Engine API
    # -------------------------------------------------------------------------

    def _unavailable(self, handle: str, error: Exception) -> BackendUnavailableError:
        msg = f"Cannot reach container runtime at {self._socket_path}: {error}"
        return BackendUnavailableError(msg, service_name=handle, cause=error)

    def _raise_for_status(self, response: httpx.Response, handle: str) -> None:
        if response.status_code == httpx.codes.NOT_FOUND:
            msg = f"Container not found: {handle}"
            raise ServiceNotFoundError(msg, service_name=handle)
        if response.is_error:
            diagnostic = _error_message(response)
            msg = f"Container runtime rejected request for {handle}: {diagnostic}"
            raise BackendCommandFailedError(
                msg,
                service_name=handle,
                diagnostic=diagnostic,
                exit_code=response.status_code,
            )

    async def _request(
        self,
        method: str,
        path: str,
        handle: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        request = self._client.build_request(method, path, params=params, json=json)
        try:
            response = await _send(self._client, request)
        except httpx.TransportError as e:
            raise self._unavailable(handle, e) from e
        self._raise_for_status(response, handle)
        return response

    async def inspect(self, handle: str) -> dict[str, Any]:
        """Return the inspection document of a container.

        Raises:
            ServiceNotFoundError: If the container does not exist.
            BackendUnavailableError: If the runtime cannot be reached.
        """
        response = await self._request("GET", f"/containers/{handle}/json", handle)
        return response.json()

    async def fetch_logs(
        self,
        handle: str,
        *,
        tail: int,
        since: datetime | None = None,
        until: datetime | None = None,
        timestamps: bool = True,
    ) -> bytes:
        """Return the raw (possibly multiplexed) log buffer of a container."""
        params = _log_params(
            tail=tail, timestamps=timestamps, follow=False, since=since, until=until
        )
        response = await self._request(
            "GET", f"/containers/{handle}/logs", handle, params=params
        )
        return response.content

    @asynccontextmanager
    async def stream_logs(
        self,
        handle: str,
        *,
        tail: int,
        since: datetime | None = None,
        until: datetime | None = None,
        timestamps: bool = True,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open a following log stream of a container.

        The response is closed when the block exits, including on
        cancellation.

        Yields:
            An async iterator of raw chunks.
        """
        params = _log_params(
            tail=tail, timestamps=timestamps, follow=True, since=since, until=until
        )
        request = self._client.build_request(
            "GET",
            f"/containers/{handle}/logs",
            params=params,
            timeout=httpx.Timeout(_REQUEST_TIMEOUT, read=None),
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.TransportError as e:
            raise self._unavailable(handle, e) from e

        try:
            if response.is_error:
                await response.aread()
                self._raise_for_status(response, handle)
            yield response.aiter_bytes()
        finally:
            with anyio.CancelScope(shield=True):
                await response.aclose()

    async def fetch_stats(self, handle: str) -> dict[str, Any]:
        """Return a single stats sample of a container."""
        response = await self._request(
            "GET", f"/containers/{handle}/stats", handle, params={"stream": "false"}
        )
        return response.json()

    async def exec(self, handle: str, command: Sequence[str]) -> bytes:
        """Run a command in a container and return its raw framed output."""
        created = await self._request(
            "POST",
            f"/containers/{handle}/exec",
            handle,
            json={"Cmd": list(command), "AttachStdout": True, "AttachStderr": True},
        )
        exec_id = created.json()["Id"]
        started = await self._request(
            "POST",
            f"/exec/{exec_id}/start",
            handle,
            json={"Detach": False, "Tty": False},
        )
        self._logger.debug("container_exec", container=handle, command=list(command))
        return started.content

    # -------------------------------------------------------------------------
    # Compose
    # -------------------------------------------------------------------------

    async def _probe_compose(self, command: tuple[str, ...]) -> bool:
        try:
            result = await anyio.run_process([*command, "--version"], check=False)
        except OSError:
            return False
        return result.returncode == 0

    async def compose_command(self) -> tuple[str, ...]:
        """Return the compose invocation available on this host.

        Raises:
            BackendUnavailableError: If neither compose v2 nor v1 is installed.
        """
        if self._compose_command is None:
            for candidate in (COMPOSE_V2, COMPOSE_V1):
                if await self._probe_compose(candidate):
                    self._compose_command = candidate
                    break
            else:
                msg = (
                    "Docker Compose is not installed. Please install Docker "
                    "Compose v2 or docker-compose v1."
                )
                raise BackendUnavailableError(msg)
            self._logger.debug(
                "compose_detected", command=" ".join(self._compose_command)
            )
        return self._compose_command

    async def compose(self, *args: str) -> str:
        """Run a compose subcommand against this project.

        Args:
            args: Subcommand and its arguments, e.g. ``("up", "-d", "redis")``.

        Returns:
            Standard output of the command.

        Raises:
            BackendUnavailableError: If compose cannot be executed.
            BackendCommandFailedError: If compose exits with a non-zero status.
        """
        base = await self.compose_command()
        command = [
            *base,
            "-f",
            str(self.compose_file),
            "-p",
            self.project,
            *args,
        ]
        try:
            result = await anyio.run_process(
                command, check=False, cwd=self.compose_file.parent
            )
        except OSError as e:
            msg = f"Failed to run {' '.join(base)}: {e}"
            raise BackendUnavailableError(msg, cause=e) from e

        if result.returncode != 0:
            diagnostic = result.stderr.decode("utf-8", errors="replace").strip()
            msg = f"{' '.join(base)} {' '.join(args)} failed: {diagnostic}"
            raise BackendCommandFailedError(
                msg, diagnostic=diagnostic, exit_code=result.returncode
            )
        return result.stdout.decode("utf-8", errors="replace")
