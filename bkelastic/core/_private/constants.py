import os
import sys


def env_integer(key, default):
    if key in os.environ:
        val = os.environ[key]
        if val == "inf":
            return sys.maxsize
        else:
            return int(val)
    return default


def env_str(key, default):
    if key in os.environ:
        return os.environ[key]
    return default


LOGGER_FORMAT = (
    "%(asctime)s\t%(levelname)s %(filename)s:%(lineno)s -- %(message)s")
LOGGER_FORMAT_HELP = f"The logging format. default='{LOGGER_FORMAT}'"
LOGGER_LEVEL_INFO = "info"
LOGGER_LEVEL_HELP = ("The logging level threshold, choices=['debug', 'info',"
                     " 'warning', 'error', 'critical'], default='info'")

LOGGING_ROTATE_MAX_BYTES = 64 * 1024 * 1024  # 64MB.
LOGGING_ROTATE_BACKUP_COUNT = 5  # 5 Backup files at max.

# The bootstrap log. The last line of it goes into the failure signal.
BOOTSTRAP_LOG_FILE = env_str(
    "BKELASTIC_LOG_FILE", "/var/log/elastic-stack.log")

# This file survives reboots so that a bootstrap interrupted by a hard
# failure (eg. kernel panic) is not resumed from an unknown state.
BOOTSTRAP_STATUS_FILE = env_str(
    "BKELASTIC_STATUS_FILE", "/var/log/elastic-stack-bootstrap-status")

BOOTSTRAP_STATUS_STARTED = "Started"
BOOTSTRAP_STATUS_COMPLETED = "Completed"

# The CloudFormation logical resource this host belongs to
BOOTSTRAP_SIGNAL_RESOURCE = "AgentAutoScaleGroup"

# EC2 instance metadata service (IMDSv2)
METADATA_SERVICE_URL = env_str(
    "BKELASTIC_METADATA_SERVICE_URL", "http://169.254.169.254")
METADATA_TOKEN_TTL_SECONDS = 60
METADATA_REQUEST_TIMEOUT = env_integer("BKELASTIC_METADATA_TIMEOUT_S", 10)

# Container runtime readiness poll: probe, then wait 1, 2, 3, 4 seconds.
CONTAINER_RUNTIME_MAX_PROBES = 5

AGENT_USER = "buildkite-agent"
AGENT_SERVICE_NAME = "buildkite-agent"
LIFECYCLED_SERVICE_NAME = "lifecycled.service"
AUTHORIZED_KEYS_TIMER_NAME = "refresh_authorized_keys.timer"

AGENT_HOME_DIR = "/var/lib/buildkite-agent"
AGENT_CONFIG_DIR = "/etc/buildkite-agent"
AGENT_BINARY_DIR = "/usr/bin"
EPHEMERAL_MOUNT_DIR = "/mnt/ephemeral"

LIFECYCLED_HANDLER = "/usr/local/bin/stop-agent-gracefully"
LIFECYCLED_CLOUDWATCH_GROUP = "/buildkite/lifecycled"

AGENT_EDGE_DOWNLOAD_URL = (
    "https://download.buildkite.com/agent/experimental/latest/"
    "buildkite-agent-linux-{arch}")

AGENT_CANCEL_GRACE_PERIOD = 60

PLUGIN_SECRETS = "secrets"
PLUGIN_ECR = "ecr"
PLUGIN_DOCKER_LOGIN = "docker-login"

# Plugin name and the environment flag enabling it, in rendering order
PLUGIN_FLAGS = [
    (PLUGIN_SECRETS, "SECRETS_PLUGIN_ENABLED"),
    (PLUGIN_ECR, "ECR_PLUGIN_ENABLED"),
    (PLUGIN_DOCKER_LOGIN, "DOCKER_LOGIN_PLUGIN_ENABLED"),
]

SSH_USER = "ec2-user"
