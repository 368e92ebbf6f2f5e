import os
from typing import Any, Dict, Mapping, Optional, TypeVar

from github_repo_push.domain.exceptions import ConfigurationError

T = TypeVar("T")

DEFAULT_AUTHOR_NAME_KEY = "scaffolder.defaultAuthor.name"
DEFAULT_AUTHOR_EMAIL_KEY = "scaffolder.defaultAuthor.email"
DEFAULT_COMMIT_MESSAGE_KEY = "scaffolder.defaultCommitMessage"

# Environment variables backing the process-wide scaffolder defaults.
ENV_KEYS = {
    "SCAFFOLDER_DEFAULT_AUTHOR_NAME": DEFAULT_AUTHOR_NAME_KEY,
    "SCAFFOLDER_DEFAULT_AUTHOR_EMAIL": DEFAULT_AUTHOR_EMAIL_KEY,
    "SCAFFOLDER_DEFAULT_COMMIT_MESSAGE": DEFAULT_COMMIT_MESSAGE_KEY,
}


class Config:
    """
    Read-only accessor over nested configuration data.

    Keys are dotted paths, e.g. `scaffolder.defaultAuthor.name` looks up
    data["scaffolder"]["defaultAuthor"]["name"].
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self._data: Mapping[str, Any] = data or {}

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """
        Builds a Config from SCAFFOLDER_* environment variables.
        The entrypoint is expected to have called load_dotenv() beforehand.
        """
        environ = os.environ if environ is None else environ
        data: Dict[str, Any] = {}
        for env_name, key in ENV_KEYS.items():
            value = environ.get(env_name)
            if value:
                _set_path(data, key, value)
        return cls(data)

    def get_optional(self, key: str) -> Optional[Any]:
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return None
            node = node[part]
        return node

    def get_optional_string(self, key: str) -> Optional[str]:
        value = self.get_optional(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise ConfigurationError(
                f"Invalid type in config for key '{key}', got {type(value).__name__}, wanted string"
            )
        return value


def _set_path(data: Dict[str, Any], key: str, value: Any) -> None:
    *parents, leaf = key.split(".")
    node = data
    for part in parents:
        node = node.setdefault(part, {})
    node[leaf] = value


def resolve_setting(explicit: Optional[T], process_default: Optional[T] = None, fallback: Optional[T] = None) -> Optional[T]:
    """
    Applies the precedence rule used for every defaulted input:
    explicit input, then the process-wide default, then the hard-coded fallback.
    None and empty strings count as unset; False is a real value.
    """
    for candidate in (explicit, process_default):
        if candidate is not None and candidate != "":
            return candidate
    return fallback
