import logging

logger = logging.getLogger(__name__)


class ProcessSupervisor:
    """Interface for the process supervisor running the host services."""

    def enable(self, service_name: str) -> None:
        raise NotImplementedError

    def start_now(self, service_name: str) -> None:
        """Enable the service and start it immediately."""
        raise NotImplementedError


class ContainerRuntime:
    """Interface for the container runtime CLI."""

    def ps(self) -> bool:
        """Return True if the container runtime responds."""
        raise NotImplementedError

    def version(self) -> str:
        raise NotImplementedError
