import logging
import subprocess
from typing import Any, Dict

from bkelastic.core._private.core_utils import load_class
from bkelastic.core._private.docker import DockerRuntime
from bkelastic.core._private.services import SystemdSupervisor

logger = logging.getLogger(__name__)


class BootstrapCollaborators:
    """The external services the bootstrap talks to."""

    def __init__(self,
                 metadata_service=None,
                 secret_store=None,
                 fleet_manager=None,
                 provisioning_controller=None,
                 file_fetcher=None,
                 process_supervisor=None,
                 container_runtime=None,
                 process_runner=subprocess):
        self.metadata_service = metadata_service
        self.secret_store = secret_store
        self.fleet_manager = fleet_manager
        self.provisioning_controller = provisioning_controller
        self.file_fetcher = file_fetcher
        self.process_supervisor = process_supervisor or SystemdSupervisor(
            process_runner=process_runner)
        self.container_runtime = container_runtime or DockerRuntime(
            process_runner=process_runner)
        self.process_runner = process_runner


def _import_aws(provider_config):
    from bkelastic.providers._private.aws.config import make_aws_collaborators
    return make_aws_collaborators


def _import_external(provider_config):
    return load_class(provider_config["provider_class"])


_CLOUD_PROVIDERS = {
    "aws": _import_aws,
    "external": _import_external,
}


def _get_collaborators_factory(provider_config: Dict[str, Any]):
    importer = _CLOUD_PROVIDERS.get(provider_config["type"])
    if importer is None:
        raise NotImplementedError("Unsupported cloud provider: {}".format(
            provider_config["type"]))
    return importer(provider_config)


def _get_collaborators(provider_config: Dict[str, Any],
                       process_runner=subprocess) -> BootstrapCollaborators:
    """Create the collaborators for a given provider config.

    Args:
        provider_config: {"type": "aws", "region": "..."}. An "external"
            type names a factory with "provider_class".
        process_runner: Runs the host commands.

    Returns:
        BootstrapCollaborators
    """
    factory = _get_collaborators_factory(provider_config)
    return factory(provider_config, process_runner=process_runner)
