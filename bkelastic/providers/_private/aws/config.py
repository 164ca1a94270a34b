import logging
import subprocess
from typing import Any, Dict

from bkelastic.core._private.providers import BootstrapCollaborators
from bkelastic.providers._private.aws.cloud_provider import AWSSecretStore, \
    AWSFleetManager, AWSProvisioningController
from bkelastic.providers._private.aws.file_fetcher import AWSFileFetcher
from bkelastic.providers._private.aws.metadata import AWSMetadataService

logger = logging.getLogger(__name__)


def make_aws_collaborators(provider_config: Dict[str, Any],
                           process_runner=subprocess) -> BootstrapCollaborators:
    region = provider_config.get("region")
    if not region:
        raise ValueError("The AWS region is needed for the bootstrap.")

    metadata_service = AWSMetadataService()
    return BootstrapCollaborators(
        metadata_service=metadata_service,
        secret_store=AWSSecretStore(region),
        fleet_manager=AWSFleetManager(region),
        provisioning_controller=AWSProvisioningController(
            region, metadata_service=metadata_service),
        file_fetcher=AWSFileFetcher(region),
        process_runner=process_runner)
