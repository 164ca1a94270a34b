import logging
from typing import Callable, Optional

from bkelastic.core._private.logging_utils import get_last_log_line
from bkelastic.core.cloud_provider import FleetManager, \
    ProvisioningController, SignalRejected, INSTANCE_HEALTH_UNHEALTHY

logger = logging.getLogger(__name__)


class HealthReporter:
    """Reports the outcome of the bootstrap to the fleet and the stack.

    Args:
        fleet_manager: Marks the instance unhealthy on failure.
        provisioning_controller: Receives the success or failure signal.
        stack_name: The stack the host belongs to.
        resource_name: The logical resource of the stack to signal.
        log_file: The bootstrap log. Its last line goes into the failure
            reason.
        instance_id_lookup: Resolves the instance id when a failure happens
            before the identity of the host is known.
    """

    def __init__(self,
                 fleet_manager: FleetManager,
                 provisioning_controller: ProvisioningController,
                 stack_name: str,
                 resource_name: str,
                 log_file: Optional[str] = None,
                 instance_id_lookup: Optional[Callable[[], str]] = None):
        self.fleet_manager = fleet_manager
        self.provisioning_controller = provisioning_controller
        self.stack_name = stack_name
        self.resource_name = resource_name
        self.log_file = log_file
        self.instance_id_lookup = instance_id_lookup
        self.instance_id = None

    def set_instance_id(self, instance_id: str) -> None:
        self.instance_id = instance_id

    def get_failure_reason(self, line) -> str:
        return "Error on line {}: {}".format(
            line, get_last_log_line(self.log_file))

    def on_error(self, line, exit_code: int) -> None:
        # taken before the health report adds its own records to the log
        reason = self.get_failure_reason(line)
        if exit_code != 0:
            self._mark_unhealthy()

        try:
            self.provisioning_controller.signal(
                self.stack_name, self.resource_name, exit_code, reason)
        except Exception as e:
            # the bootstrap still fails with its own error
            logger.error("Failed to signal the failure: %s", e)

    def on_success(self) -> None:
        try:
            self.provisioning_controller.signal(
                self.stack_name, self.resource_name, 0)
        except SignalRejected as e:
            # This will fail if the stack has already completed, for instance
            # if there is a min size of 1 and this is the 2nd instance.
            logger.info("Signal failed: %s", e)
        except Exception as e:
            logger.warning("Signal failed: %s", e)

    def _mark_unhealthy(self):
        try:
            instance_id = self.instance_id
            if not instance_id and self.instance_id_lookup is not None:
                instance_id = self.instance_id_lookup()
            if not instance_id:
                logger.warning(
                    "Unknown instance id, not marking the instance unhealthy.")
                return
            self.fleet_manager.set_instance_health(
                instance_id, INSTANCE_HEALTH_UNHEALTHY)
        except Exception as e:
            logger.warning("Failed to mark the instance unhealthy: %s", e)
