import logging
import os
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Union
from urllib.parse import parse_qs, urlparse
from pydantic import BaseModel, Field, ConfigDict, SecretStr, model_validator

from github_repo_push.domain.exceptions import ConfigurationError, InputError, NotAllowedError
from github_repo_push.domain.models import RepositoryIdentity

logger = logging.getLogger(__name__)

GITHUB_HOST = "github.com"
GITHUB_API_BASE_URL = "https://api.github.com"


class GithubAppConfig(BaseModel):
    """Credentials of a GitHub App used to mint installation tokens."""
    model_config = ConfigDict(frozen=True)

    app_id: str
    private_key: SecretStr
    allowed_installation_owners: List[str] = Field(default_factory=list)


class GithubIntegrationConfig(BaseModel):
    """
    Settings for one GitHub host (github.com or a GitHub Enterprise server).
    """
    model_config = ConfigDict(frozen=True)

    host: str = GITHUB_HOST
    api_base_url: Optional[str] = None
    token: Optional[SecretStr] = None
    apps: List[GithubAppConfig] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _default_api_base_url(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("api_base_url"):
            host = data.get("host") or GITHUB_HOST
            default = GITHUB_API_BASE_URL if host == GITHUB_HOST else f"https://{host}/api/v3"
            data = {**data, "api_base_url": default}
        return data


class ScmIntegrationRegistry:
    """
    Lookup of configured GitHub integrations by host.
    A github.com integration without credentials is always present.
    """

    def __init__(self, github: Iterable[GithubIntegrationConfig] = ()):
        self._by_host = {}
        for integration in github:
            host = integration.host.lower()
            if host in self._by_host:
                raise ConfigurationError(f"Duplicate GitHub integration for host '{host}'")
            self._by_host[host] = integration
        self._by_host.setdefault(GITHUB_HOST, GithubIntegrationConfig(host=GITHUB_HOST))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ScmIntegrationRegistry":
        """
        Builds a single GitHub integration from GITHUB_* environment variables.
        """
        environ = os.environ if environ is None else environ
        host = environ.get("GITHUB_HOST") or GITHUB_HOST

        apps = []
        app_id = environ.get("GITHUB_APP_ID")
        if app_id:
            private_key = environ.get("GITHUB_APP_PRIVATE_KEY")
            key_path = environ.get("GITHUB_APP_PRIVATE_KEY_PATH")
            if not private_key and key_path:
                try:
                    private_key = Path(key_path).read_text()
                except OSError as e:
                    raise ConfigurationError(f"Unable to read GitHub App private key from {key_path}: {e}") from e
            if not private_key:
                raise ConfigurationError(
                    "GITHUB_APP_ID is set but neither GITHUB_APP_PRIVATE_KEY nor GITHUB_APP_PRIVATE_KEY_PATH is."
                )
            owners = environ.get("GITHUB_APP_ALLOWED_INSTALLATION_OWNERS", "")
            apps.append(GithubAppConfig(
                app_id=app_id,
                private_key=private_key,
                allowed_installation_owners=[o.strip() for o in owners.split(",") if o.strip()],
            ))

        integration = GithubIntegrationConfig(
            host=host,
            api_base_url=environ.get("GITHUB_API_BASE_URL") or None,
            token=environ.get("GITHUB_TOKEN") or None,
            apps=apps,
        )
        logger.info(f"Configured GitHub integration for {host} (apps: {len(apps)}, token: {integration.token is not None}).")
        return cls([integration])

    def by_host(self, host: str) -> Optional[GithubIntegrationConfig]:
        return self._by_host.get(host.lower())

    def by_url(self, url: str) -> Optional[GithubIntegrationConfig]:
        host = _host_of(url)
        return self.by_host(host) if host else None

    def github_integrations(self) -> List[GithubIntegrationConfig]:
        return list(self._by_host.values())


def _host_of(url: str) -> Optional[str]:
    parsed = urlparse(url if "://" in url else f"https://{url}")
    # drop userinfo, keep an explicit port
    host = parsed.netloc.rsplit("@", 1)[-1]
    return host.lower() or None


def parse_repo_url(repo_url: str, integrations: ScmIntegrationRegistry) -> RepositoryIdentity:
    """
    Splits a repository locator into host, owner and repository name.

    Accepts the scaffolder locator form `github.com?owner=org&repo=name` and plain
    repository URLs such as `https://github.com/org/name`. A missing owner is not
    an error here; callers decide whether they need one.

    Raises:
        InputError: If the host is unknown, the repository name is missing or the
            locator cannot be read.
    """
    host = _host_of(repo_url)
    if not host:
        raise InputError(f"Invalid repo URL passed to publisher: {repo_url}, missing host")

    if integrations.by_host(host) is None:
        raise InputError(
            f"No matching integration configuration for host {host}, please check your integrations config"
        )

    parsed = urlparse(repo_url if "://" in repo_url else f"https://{repo_url}")
    query = parse_qs(parsed.query)

    if query:
        owner = _first(query.get("owner"))
        repo = _first(query.get("repo"))
    else:
        segments = [segment for segment in parsed.path.split("/") if segment]
        if len(segments) > 2:
            raise InputError(f"Invalid repo URL passed to publisher: {repo_url}, too many path segments")
        repo = segments[-1] if segments else None
        owner = segments[0] if len(segments) == 2 else None
        if repo and repo.endswith(".git"):
            repo = repo[: -len(".git")]

    if not repo:
        raise InputError(f"Invalid repo URL passed to publisher: {repo_url}, missing repo")

    return RepositoryIdentity(host=host, owner=owner or None, repo=repo)


def _first(values: Optional[List[str]]) -> Optional[str]:
    return values[0] if values else None


def get_repo_source_directory(workspace_path: Union[str, Path], source_path: Optional[str] = None) -> Path:
    """
    Resolves the directory to publish: the workspace itself, or a subdirectory of it.

    Raises:
        NotAllowedError: If `source_path` points outside the workspace.
    """
    workspace = Path(workspace_path).resolve()
    if not source_path:
        return workspace

    target = (workspace / source_path).resolve()
    if target != workspace and workspace not in target.parents:
        raise NotAllowedError("Relative path is not allowed to refer to a directory outside its parent")
    return target
