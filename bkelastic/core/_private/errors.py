import subprocess


class BootstrapError(RuntimeError):
    """Base of the fatal errors that abort the bootstrap."""
    exit_code = 1


class UnknownPriorState(BootstrapError):
    pass


class MetadataUnavailable(BootstrapError):
    pass


class SecretUnavailable(BootstrapError):
    pass


class RuntimeUnavailable(BootstrapError):
    pass


class FetchError(BootstrapError):
    pass


class BootstrapAlreadyCompleted(Exception):
    """Raised by the status gate to short-circuit a completed host."""
    pass


def get_exit_code(exc):
    if isinstance(exc, subprocess.CalledProcessError):
        return exc.returncode or 1
    return getattr(exc, "exit_code", 1) or 1
