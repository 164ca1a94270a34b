import logging
from typing import Optional

logger = logging.getLogger(__name__)

INSTANCE_HEALTH_UNHEALTHY = "Unhealthy"


class MetadataService:
    """Interface for the instance metadata service of the cloud.

    **Important**: This is an INTERNAL API that is only exposed for the purpose
    of implementing custom cloud providers and test doubles.
    """

    def get_token(self, ttl_seconds: int) -> str:
        """Return a short-lived access token for the metadata service.
        The token must not be logged or persisted."""
        raise NotImplementedError

    def get_instance_id(self, token: str) -> str:
        raise NotImplementedError


class SecretStore:
    """Interface for the parameter store holding the agent secrets."""

    def get_parameter(self, path: str, decrypt: bool = True) -> str:
        raise NotImplementedError


class FleetManager:
    """Interface for the service deciding on instance health and scaling."""

    def set_instance_health(self, instance_id: str, status: str) -> None:
        raise NotImplementedError


class ProvisioningController:
    """Interface for the service tracking the initialization of stack resources."""

    def signal(self, stack_name: str, resource_name: str,
               exit_code: int, reason: Optional[str] = None) -> None:
        """Signal success (exit code 0) or failure of the resource.

        Raises SignalRejected if the controller does not accept the signal,
        for instance because the resource has already completed."""
        raise NotImplementedError


class FileFetcher:
    """Interface for retrieving remote files to local paths."""

    def fetch(self, url: str, dest_path: str) -> None:
        raise NotImplementedError


class SignalRejected(RuntimeError):
    pass
