import logging
import subprocess

from bkelastic.core.host_services import ProcessSupervisor

logger = logging.getLogger(__name__)

SYSTEMCTL_CMD = "systemctl"


class SystemdSupervisor(ProcessSupervisor):
    def __init__(self, process_runner=subprocess):
        self.process_runner = process_runner

    def enable(self, service_name: str) -> None:
        logger.info("Enabling service %s", service_name)
        self.process_runner.check_call(
            [SYSTEMCTL_CMD, "enable", service_name])

    def start_now(self, service_name: str) -> None:
        logger.info("Starting service %s", service_name)
        self.process_runner.check_call(
            [SYSTEMCTL_CMD, "enable", "--now", service_name])
