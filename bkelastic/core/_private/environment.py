import logging
import os
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class Environment:
    """The variables the bootstrap reads and exports.

    Wraps a mapping (the process environment by default) so that the
    components read inputs and export values through one object instead
    of touching os.environ directly.
    """

    def __init__(self, variables: Optional[Dict[str, str]] = None) -> None:
        self._variables = os.environ if variables is None else variables

    def get(self, name: str, default: str = "") -> str:
        value = self._variables.get(name)
        if value is None:
            return default
        return value

    def get_bool(self, name: str, default: bool = False) -> bool:
        value = self._variables.get(name)
        if value is None:
            return default
        return value == "true"

    def is_set(self, name: str) -> bool:
        return name in self._variables

    def set_unless_present(self, name: str, value: str) -> bool:
        """Export the value unless the name is already bound.

        Returns True if the value was set."""
        if self.is_set(name):
            logger.warning(
                "%s already set, NOT overriding! (current value \"%s\")",
                name, self._variables[name])
            return False
        self._variables[name] = value
        return True

    def set_always(self, name: str, value: str) -> None:
        self._variables[name] = value

    def as_dict(self) -> Dict[str, str]:
        return dict(self._variables)
