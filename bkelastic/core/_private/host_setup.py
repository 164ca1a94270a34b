import logging
import os
import subprocess
import sys
from shlex import quote
from typing import Dict, Optional

from bkelastic.core._private import constants
from bkelastic.core._private.core_utils import force_symlink, write_file
from bkelastic.core._private.environment import Environment
from bkelastic.core._private.identity import InstanceIdentity
from bkelastic.core.cloud_provider import FileFetcher
from bkelastic.core.host_services import ProcessSupervisor

logger = logging.getLogger(__name__)

AGENT_RELEASE_EDGE = "edge"
SUDOERS_FILE_MODE = 0o440
EXECUTABLE_FILE_MODE = 0o755


def get_fetch_command():
    return "{} -m bkelastic.scripts.scripts fetch".format(
        quote(sys.executable))


def render_refresh_authorized_keys_script(url, tmp_file, authorized_keys_file,
                                          ssh_user):
    lines = [
        "#!/bin/bash",
        "set -euo pipefail",
        "{} {} {}".format(get_fetch_command(), quote(url), quote(tmp_file)),
        "mv {} {}".format(quote(tmp_file), quote(authorized_keys_file)),
        "chmod 600 {}".format(quote(authorized_keys_file)),
        "chown {}: {}".format(ssh_user, quote(authorized_keys_file)),
    ]
    return "\n".join(lines) + "\n"


class HostSetup:
    """The host preparation steps around the agent configuration."""

    def __init__(self,
                 environment: Environment,
                 params,
                 file_fetcher: FileFetcher,
                 process_supervisor: ProcessSupervisor,
                 process_runner=subprocess) -> None:
        self.environment = environment
        self.params = params
        self.file_fetcher = file_fetcher
        self.process_supervisor = process_supervisor
        self.process_runner = process_runner

    def get_agent_release(self):
        return self.environment.get("BUILDKITE_AGENT_RELEASE")

    def install_edge_agent(self, identity: InstanceIdentity) -> Optional[str]:
        if self.get_agent_release() != AGENT_RELEASE_EDGE:
            return None
        logger.info("Downloading buildkite-agent edge...")
        agent_path = os.path.join(
            self.params.agent_binary_dir, "buildkite-agent-edge")
        self.file_fetcher.fetch(
            constants.AGENT_EDGE_DOWNLOAD_URL.format(
                arch=identity.architecture),
            agent_path)
        os.chmod(agent_path, EXECUTABLE_FILE_MODE)
        self.process_runner.check_call([agent_path, "--version"])
        return agent_path

    def write_sudoers(self) -> Optional[str]:
        permissions = self.environment.get(
            "BUILDKITE_ADDITIONAL_SUDO_PERMISSIONS")
        if not permissions:
            return None
        sudoers_file = self.params.sudoers_file
        logger.info("Granting additional sudo permissions in %s", sudoers_file)
        write_file(
            sudoers_file,
            "{} ALL=NOPASSWD: {}\n".format(self.params.agent_user, permissions),
            mode=SUDOERS_FILE_MODE)
        return sudoers_file

    def select_agent_binary(self) -> str:
        agent_dir = self.params.agent_binary_dir
        agent_path = os.path.join(agent_dir, "buildkite-agent")
        target_path = os.path.join(
            agent_dir, "buildkite-agent-{}".format(self.get_agent_release()))
        os.makedirs(agent_dir, exist_ok=True)
        force_symlink(agent_path, target_path)
        return agent_path

    def fetch_env_file(self) -> Optional[str]:
        url = self.environment.get("BUILDKITE_ENV_FILE_URL")
        if not url:
            return None
        self.file_fetcher.fetch(url, self.params.agent_env_file)
        return self.params.agent_env_file

    def setup_authorized_keys(self) -> Optional[str]:
        url = self.environment.get("BUILDKITE_AUTHORIZED_USERS_URL")
        if not url:
            return None
        script_path = self.params.refresh_authorized_keys_script
        script = render_refresh_authorized_keys_script(
            url,
            os.path.join(self.params.tmp_dir, "authorized_keys"),
            self.params.authorized_keys_file,
            self.params.ssh_user)
        write_file(script_path, script, mode=EXECUTABLE_FILE_MODE)
        self.process_runner.check_call(["bash", script_path])
        self.process_supervisor.enable(constants.AUTHORIZED_KEYS_TIMER_NAME)
        return script_path

    def install_git_lfs(self) -> None:
        # Finish git lfs install
        self.process_runner.check_call(
            ["su", self.params.agent_user, "-l", "-c", "git lfs install"])

    def run_extension_script(
            self, script_env: Optional[Dict[str, str]] = None) -> bool:
        url = self.environment.get("BUILDKITE_ELASTIC_BOOTSTRAP_SCRIPT")
        if not url:
            return False
        script_path = os.path.join(self.params.tmp_dir, "elastic_bootstrap")
        self.file_fetcher.fetch(url, script_path)
        try:
            logger.info("Running the bootstrap script from %s", url)
            self.process_runner.check_call(
                ["bash", script_path], env=script_env)
        finally:
            if os.path.exists(script_path):
                os.remove(script_path)
        return True

    def chown_agent_config(self) -> None:
        self.process_runner.check_call(
            ["chown", "{}:".format(self.params.agent_user),
             self.params.agent_config_file])
