import logging

from bkelastic.core._private.errors import SecretUnavailable
from bkelastic.core.cloud_provider import SecretStore

logger = logging.getLogger(__name__)


class SecretResolver:
    def __init__(self, secret_store: SecretStore) -> None:
        self.secret_store = secret_store

    def fetch_token(self, path: str) -> str:
        """Fetch the agent token stored at the parameter path.

        The token is returned to the caller only. It must never be logged.
        """
        if not path:
            raise SecretUnavailable("No parameter path for the agent token.")
        logger.info(
            "Setting $BUILDKITE_AGENT_TOKEN to the value stored "
            "in the SSM Parameter %s", path)
        try:
            token = self.secret_store.get_parameter(path, decrypt=True)
        except SecretUnavailable:
            raise
        except Exception as e:
            raise SecretUnavailable(
                "Failed to get the agent token from {}: {}".format(
                    path, e)) from None
        if token is None:
            raise SecretUnavailable(
                "No value stored in the parameter {}.".format(path))
        return token
