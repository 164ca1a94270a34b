import logging
import os

import bkelastic.core._private.constants as constants

logger = logging.getLogger(__name__)


class BootstrapParams:
    """A class used to store the locations and names used by the bootstrap.

    Attributes:
        root_dir (str): If provided, every default host path is placed under
            this directory instead of the file system root. Used to run the
            bootstrap against a scratch directory.
        status_file (str): The bootstrap status marker.
        log_file (str): The bootstrap log file. Its last line is sent as
            the failure reason.
        agent_home_dir (str): The home of the agent service account.
        agent_config_dir (str): The agent configuration directory.
        cfn_env_file (str): The environment overlay sourced by the
            environment hook of the builds.
        agent_config_file (str): The agent configuration file.
        agent_env_file (str): Where the environment file from
            BUILDKITE_ENV_FILE_URL is downloaded.
        lifecycled_config_file (str): The lifecycle listener configuration.
        fstab_file (str): The persistent mount table.
        sudoers_file (str): The additional sudo permissions of the agent.
        agent_binary_dir (str): The directory holding the agent binaries.
        ephemeral_mount_dir (str): Where the instance storage is mounted.
        refresh_authorized_keys_script (str): The script refreshing the
            authorized keys of the ssh user.
        ssh_home_dir (str): The home of the ssh user.
        tmp_dir (str): Directory for downloads that are removed after use.
        agent_user (str): The unprivileged account running the agent.
        ssh_user (str): The account whose authorized keys are managed.
        signal_resource (str): The logical resource the host signals.
    """

    def __init__(self,
                 root_dir=None,
                 status_file=None,
                 log_file=None,
                 agent_home_dir=None,
                 agent_config_dir=None,
                 cfn_env_file=None,
                 agent_config_file=None,
                 agent_env_file=None,
                 lifecycled_config_file=None,
                 fstab_file=None,
                 sudoers_file=None,
                 agent_binary_dir=None,
                 ephemeral_mount_dir=None,
                 refresh_authorized_keys_script=None,
                 ssh_home_dir=None,
                 tmp_dir=None,
                 agent_user=constants.AGENT_USER,
                 ssh_user=constants.SSH_USER,
                 signal_resource=constants.BOOTSTRAP_SIGNAL_RESOURCE):
        self.root_dir = root_dir
        self.status_file = status_file
        self.log_file = log_file
        self.agent_home_dir = agent_home_dir
        self.agent_config_dir = agent_config_dir
        self.cfn_env_file = cfn_env_file
        self.agent_config_file = agent_config_file
        self.agent_env_file = agent_env_file
        self.lifecycled_config_file = lifecycled_config_file
        self.fstab_file = fstab_file
        self.sudoers_file = sudoers_file
        self.agent_binary_dir = agent_binary_dir
        self.ephemeral_mount_dir = ephemeral_mount_dir
        self.refresh_authorized_keys_script = refresh_authorized_keys_script
        self.ssh_home_dir = ssh_home_dir
        self.tmp_dir = tmp_dir
        self.agent_user = agent_user
        self.ssh_user = ssh_user
        self.signal_resource = signal_resource
        self._fill_defaults()

    def _host_path(self, path):
        if not self.root_dir:
            return path
        return os.path.join(self.root_dir, path.lstrip("/"))

    def _fill_defaults(self):
        agent_home_dir = self.agent_home_dir or self._host_path(
            constants.AGENT_HOME_DIR)
        agent_config_dir = self.agent_config_dir or self._host_path(
            constants.AGENT_CONFIG_DIR)
        self.update_if_absent(
            status_file=self._host_path(constants.BOOTSTRAP_STATUS_FILE),
            log_file=self._host_path(constants.BOOTSTRAP_LOG_FILE),
            agent_home_dir=agent_home_dir,
            agent_config_dir=agent_config_dir,
            cfn_env_file=os.path.join(agent_home_dir, "cfn-env"),
            agent_config_file=os.path.join(
                agent_config_dir, "buildkite-agent.cfg"),
            agent_env_file=os.path.join(agent_home_dir, "env"),
            lifecycled_config_file=self._host_path("/etc/lifecycled"),
            fstab_file=self._host_path("/etc/fstab"),
            sudoers_file=self._host_path(
                "/etc/sudoers.d/buildkite-agent-additional"),
            agent_binary_dir=self._host_path(constants.AGENT_BINARY_DIR),
            ephemeral_mount_dir=self._host_path(
                constants.EPHEMERAL_MOUNT_DIR),
            refresh_authorized_keys_script=self._host_path(
                "/usr/local/bin/refresh_authorized_keys"),
            ssh_home_dir=self._host_path(
                "/home/{}".format(self.ssh_user)),
            tmp_dir=self._host_path("/tmp"),
        )

    @property
    def hooks_path(self):
        return os.path.join(self.agent_config_dir, "hooks")

    @property
    def plugins_path(self):
        return os.path.join(self.agent_home_dir, "plugins")

    @property
    def builds_path(self):
        return os.path.join(self.agent_home_dir, "builds")

    @property
    def git_mirrors_path(self):
        return os.path.join(self.agent_home_dir, "git-mirrors")

    @property
    def authorized_keys_file(self):
        return os.path.join(self.ssh_home_dir, ".ssh", "authorized_keys")

    def update(self, **kwargs):
        """Update the settings according to the keyword arguments.

        Args:
            kwargs: The keyword arguments to set corresponding fields.
        """
        for arg in kwargs:
            if hasattr(self, arg):
                setattr(self, arg, kwargs[arg])
            else:
                raise ValueError(
                    f"Invalid BootstrapParams parameter in update: {arg}")

    def update_if_absent(self, **kwargs):
        """Update the settings when the target fields are None.

        Args:
            kwargs: The keyword arguments to set corresponding fields.
        """
        for arg in kwargs:
            if hasattr(self, arg):
                if getattr(self, arg) is None:
                    setattr(self, arg, kwargs[arg])
            else:
                raise ValueError("Invalid BootstrapParams parameter in"
                                 " update_if_absent: %s" % arg)
