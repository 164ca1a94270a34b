import logging
import time

from bkelastic.core._private.constants import CONTAINER_RUNTIME_MAX_PROBES, \
    AGENT_SERVICE_NAME, LIFECYCLED_SERVICE_NAME
from bkelastic.core._private.errors import RuntimeUnavailable
from bkelastic.core.host_services import ContainerRuntime, ProcessSupervisor

logger = logging.getLogger(__name__)


class ServiceActivator:
    """Starts the agent once the container runtime responds."""

    def __init__(self,
                 container_runtime: ContainerRuntime,
                 process_supervisor: ProcessSupervisor,
                 max_probes=CONTAINER_RUNTIME_MAX_PROBES,
                 sleep_func=time.sleep,
                 agent_service=AGENT_SERVICE_NAME,
                 lifecycled_service=LIFECYCLED_SERVICE_NAME) -> None:
        self.container_runtime = container_runtime
        self.process_supervisor = process_supervisor
        self.max_probes = max_probes
        self.sleep_func = sleep_func
        self.agent_service = agent_service
        self.lifecycled_service = lifecycled_service

    def wait_for_runtime(self) -> int:
        """Probe the container runtime with a linear backoff.

        The first probe is immediate, the next ones wait 1, 2, 3... seconds.

        Returns:
            The number of probes it took.
        Raises:
            RuntimeUnavailable: when no probe succeeds.
        """
        for attempt in range(self.max_probes):
            if attempt:
                self.sleep_func(attempt)
            if self.container_runtime.ps():
                return attempt + 1
            logger.info("Waiting for docker to start (attempt %s of %s)",
                        attempt + 1, self.max_probes)

        raise RuntimeUnavailable(
            "Failed to contact docker after {} attempts".format(
                self.max_probes))

    def activate(self) -> None:
        self.wait_for_runtime()
        self.process_supervisor.start_now(self.lifecycled_service)
        self.process_supervisor.start_now(self.agent_service)
