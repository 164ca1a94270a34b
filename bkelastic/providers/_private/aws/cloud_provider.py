import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from bkelastic.core._private.constants import METADATA_TOKEN_TTL_SECONDS
from bkelastic.core._private.errors import SecretUnavailable
from bkelastic.core.cloud_provider import SecretStore, FleetManager, \
    ProvisioningController, MetadataService, SignalRejected
from bkelastic.providers._private.aws.utils import client_cache, \
    get_boto_error_code, get_boto_error_message

logger = logging.getLogger(__name__)

CFN_SIGNAL_SUCCESS = "SUCCESS"
CFN_SIGNAL_FAILURE = "FAILURE"


class AWSSecretStore(SecretStore):
    """SSM Parameter Store."""

    def __init__(self, region, client=None):
        self.region = region
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = client_cache("ssm", self.region)
        return self._client

    def get_parameter(self, path: str, decrypt: bool = True) -> str:
        try:
            response = self.client.get_parameter(
                Name=path, WithDecryption=decrypt)
        except ClientError as e:
            raise SecretUnavailable(
                "Failed to get SSM parameter {}: {}".format(
                    path, get_boto_error_code(e))) from None
        except BotoCoreError as e:
            raise SecretUnavailable(
                "Failed to get SSM parameter {}: {}".format(
                    path, type(e).__name__)) from None
        return response["Parameter"]["Value"]


class AWSFleetManager(FleetManager):
    """EC2 Auto Scaling."""

    def __init__(self, region, client=None):
        self.region = region
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = client_cache("autoscaling", self.region)
        return self._client

    def set_instance_health(self, instance_id: str, status: str) -> None:
        logger.info("Setting health of instance %s to %s", instance_id, status)
        self.client.set_instance_health(
            InstanceId=instance_id, HealthStatus=status)


class AWSProvisioningController(ProvisioningController):
    """CloudFormation resource signals.

    Like cfn-signal, the unique id of the signal is the instance id, which is
    resolved from the instance metadata if it is not given.
    """

    def __init__(self, region, unique_id: Optional[str] = None,
                 metadata_service: Optional[MetadataService] = None,
                 client=None):
        self.region = region
        self.unique_id = unique_id
        self.metadata_service = metadata_service
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = client_cache("cloudformation", self.region)
        return self._client

    def _get_unique_id(self):
        if self.unique_id is None:
            if self.metadata_service is None:
                raise RuntimeError(
                    "No unique id available for the CloudFormation signal.")
            token = self.metadata_service.get_token(METADATA_TOKEN_TTL_SECONDS)
            self.unique_id = self.metadata_service.get_instance_id(token)
        return self.unique_id

    def signal(self, stack_name: str, resource_name: str,
               exit_code: int, reason: Optional[str] = None) -> None:
        status = CFN_SIGNAL_SUCCESS if exit_code == 0 else CFN_SIGNAL_FAILURE
        # SignalResource carries no reason, keep it in the log
        logger.info(
            "Signaling %s of %s in stack %s with exit code %s%s",
            status, resource_name, stack_name, exit_code,
            ": " + reason if reason else "")
        try:
            self.client.signal_resource(
                StackName=stack_name,
                LogicalResourceId=resource_name,
                UniqueId=self._get_unique_id(),
                Status=status)
        except ClientError as e:
            raise SignalRejected(
                "{}: {}".format(get_boto_error_code(e),
                                get_boto_error_message(e))) from None
