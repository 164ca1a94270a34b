import logging
import platform

from bkelastic.core._private.constants import METADATA_TOKEN_TTL_SECONDS
from bkelastic.core.cloud_provider import MetadataService

logger = logging.getLogger(__name__)

ARCH_AMD64 = "amd64"
ARCH_ARM64 = "arm64"
ARCH_UNKNOWN = "unknown"

_MACHINE_ARCHITECTURES = {
    "x86_64": ARCH_AMD64,
    "aarch64": ARCH_ARM64,
}


def get_architecture(machine: str) -> str:
    """Normalize the kernel machine name to the agent architecture name."""
    return _MACHINE_ARCHITECTURES.get(machine, ARCH_UNKNOWN)


class InstanceIdentity:
    __slots__ = ("_instance_id", "_architecture")

    def __init__(self, instance_id: str, architecture: str) -> None:
        self._instance_id = instance_id
        self._architecture = architecture

    @property
    def instance_id(self) -> str:
        return self._instance_id

    @property
    def architecture(self) -> str:
        return self._architecture

    def __eq__(self, other):
        return (isinstance(other, InstanceIdentity)
                and self._instance_id == other._instance_id
                and self._architecture == other._architecture)

    def __hash__(self):
        return hash((self._instance_id, self._architecture))

    def __repr__(self):
        return "InstanceIdentity(instance_id={!r}, architecture={!r})".format(
            self._instance_id, self._architecture)


class IdentityResolver:
    def __init__(self, metadata_service: MetadataService,
                 machine_func=platform.machine,
                 token_ttl_seconds=METADATA_TOKEN_TTL_SECONDS) -> None:
        self.metadata_service = metadata_service
        self.machine_func = machine_func
        self.token_ttl_seconds = token_ttl_seconds

    def resolve(self) -> InstanceIdentity:
        architecture = get_architecture(self.machine_func())
        # even though the token is only valid for 60s, never log it
        token = self.metadata_service.get_token(self.token_ttl_seconds)
        instance_id = self.metadata_service.get_instance_id(token)
        identity = InstanceIdentity(instance_id, architecture)
        logger.info("Resolved instance %s (%s)", instance_id, architecture)
        return identity
