import logging
import os
import subprocess
from typing import Optional

from bkelastic.core._private.core_utils import try_to_create_directory, \
    write_file
from bkelastic.core._private.environment import Environment

logger = logging.getLogger(__name__)

MOUNT_TABLE_ENTRY_FORMAT = "{} {} none defaults,bind 0 0"


def get_mount_table_entry(physical_path, logical_path):
    return MOUNT_TABLE_ENTRY_FORMAT.format(physical_path, logical_path)


class StoragePath:
    def __init__(self, logical_path: str, physical_path: str,
                 ephemeral: bool) -> None:
        self.logical_path = logical_path
        self.physical_path = physical_path
        self.ephemeral = ephemeral

    def __eq__(self, other):
        return (isinstance(other, StoragePath)
                and self.logical_path == other.logical_path
                and self.physical_path == other.physical_path
                and self.ephemeral == other.ephemeral)

    def __repr__(self):
        return "StoragePath({!r}, {!r}, ephemeral={})".format(
            self.logical_path, self.physical_path, self.ephemeral)


class StorageProvisioner:
    """Prepares the agent directories, optionally on the instance storage.

    An ephemeral directory is bind mounted from the instance storage and
    recorded in the mount table, which re-establishes the mount on reboot.
    """

    def __init__(self, params, process_runner=subprocess) -> None:
        self.params = params
        self.process_runner = process_runner

    def ensure(self, logical_path: str, ephemeral_requested: bool,
               name: Optional[str] = None) -> StoragePath:
        try_to_create_directory(logical_path)
        physical_path = logical_path
        if ephemeral_requested:
            physical_path = os.path.join(
                self.params.ephemeral_mount_dir,
                name or os.path.basename(logical_path.rstrip("/")))
            try_to_create_directory(physical_path)
            self._bind_mount(physical_path, logical_path)
            self._add_mount_table_entry(physical_path, logical_path)

        self._chown(logical_path)
        return StoragePath(logical_path, physical_path, ephemeral_requested)

    def provision_git_mirrors(
            self, environment: Environment) -> Optional[StoragePath]:
        if not environment.get_bool("BUILDKITE_AGENT_ENABLE_GIT_MIRRORS"):
            return None
        return self.ensure(
            self.params.git_mirrors_path,
            environment.get_bool("BUILDKITE_ENABLE_INSTANCE_STORAGE"),
            name="git-mirrors")

    def provision_builds(self, environment: Environment) -> StoragePath:
        return self.ensure(
            self.params.builds_path,
            environment.get_bool("BUILDKITE_ENABLE_INSTANCE_STORAGE"),
            name="builds")

    def _bind_mount(self, physical_path, logical_path):
        logger.info("Bind mounting %s at %s", physical_path, logical_path)
        self.process_runner.check_call(
            ["mount", "-o", "bind", physical_path, logical_path])

    def _add_mount_table_entry(self, physical_path, logical_path):
        fstab_file = self.params.fstab_file
        entry = get_mount_table_entry(physical_path, logical_path)
        content = ""
        if os.path.exists(fstab_file):
            with open(fstab_file, "r") as f:
                content = f.read()
        if entry in content.splitlines():
            logger.info("Mount table already has %s", entry)
            return

        if content and not content.endswith("\n"):
            entry = "\n" + entry
        write_file(fstab_file, entry + "\n", append=True)

    def _chown(self, path):
        self.process_runner.check_call(
            ["chown", "{}:".format(self.params.agent_user), path])
