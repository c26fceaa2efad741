import logging
from dataclasses import dataclass
from typing import List, Optional

import docker
import requests
from docker.errors import DockerException

from autoheal.config import DEFAULT_API_VERSION, Config

logger = logging.getLogger(__name__)

# Errors the SDK can surface for a single call; the transport's own
# exceptions (connection refused, read timeout) are not wrapped by docker-py
_CALL_ERRORS = (DockerException, requests.exceptions.RequestException)


class RuntimeClientError(Exception):
    """The Docker client could not be constructed or reached at startup"""


class QueryError(Exception):
    """Listing unhealthy containers failed"""


class RestartError(Exception):
    """Restarting a container failed"""


@dataclass(frozen=True)
class ContainerRef:
    id: str
    name: str

    @property
    def short_id(self) -> str:
        return self.id[:12]

    @classmethod
    def from_api(cls, data: dict) -> "ContainerRef":
        """Build from one entry of the /containers/json response"""
        container_id = data["Id"]
        names = data.get("Names") or []
        name = names[0].lstrip("/") if names else container_id[:12]
        return cls(id=container_id, name=name)


def _base_url(socket: str) -> str:
    if "://" in socket:
        return socket
    return f"unix://{socket}"


class DockerRuntimeClient:
    def __init__(self, socket: str, timeout: float,
                 api_version: str = DEFAULT_API_VERSION, client=None):
        self.socket = socket
        self.timeout = timeout

        if client is None:
            try:
                client = docker.DockerClient(
                    base_url=_base_url(socket),
                    version=api_version,
                    timeout=timeout,
                )
            except DockerException as e:
                logger.error(f"Failed to initialize Docker client for {socket}: {e}")
                raise RuntimeClientError(f"error creating docker client: {e}") from e
        self.docker = client

    @classmethod
    def from_config(cls, config: Config) -> "DockerRuntimeClient":
        """Create a client and make sure the daemon answers"""
        runtime = cls(config.socket, config.timeout, api_version=config.api_version)
        runtime.ping()
        logger.info(f"Docker client initialized (socket={config.socket}, api={config.api_version})")
        return runtime

    def ping(self) -> None:
        try:
            self.docker.ping()
        except _CALL_ERRORS as e:
            raise RuntimeClientError(f"docker daemon not reachable at {self.socket}: {e}") from e

    def list_unhealthy(self, label_filter: Optional[str] = None) -> List[ContainerRef]:
        """List containers whose health status is unhealthy"""
        filters = {"health": "unhealthy"}
        if label_filter:
            filters["label"] = label_filter

        try:
            items = self.docker.api.containers(filters=filters)
        except _CALL_ERRORS as e:
            raise QueryError(f"error listing containers: {e}") from e

        try:
            return [ContainerRef.from_api(item) for item in items]
        except (KeyError, TypeError, AttributeError) as e:
            raise QueryError(f"malformed container list response: {e!r}") from e

    def restart(self, container_id: str, timeout: Optional[float] = None) -> None:
        """Restart a container, giving it `timeout` seconds to stop.

        docker-py adds the stop timeout to the client request timeout, so the
        call itself can take up to the client timeout plus `timeout`.
        """
        stop_timeout = self.timeout if timeout is None else timeout
        try:
            self.docker.api.restart(container_id, timeout=int(stop_timeout))
        except _CALL_ERRORS as e:
            raise RestartError(f"error restarting container {container_id[:12]}: {e}") from e

    def close(self) -> None:
        try:
            self.docker.close()
        except _CALL_ERRORS as e:
            logger.warning(f"Error closing Docker client: {e}")
