import aiohttp
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse
from pydantic import SecretStr

from github_repo_push.domain.exceptions import InputError, NotFoundError
from github_repo_push.domain.models import GithubClientOptions, GithubCredentials
from github_repo_push.infrastructure.github_app import GithubAppManager
from github_repo_push.infrastructure.integrations import (
    GithubIntegrationConfig,
    ScmIntegrationRegistry,
    parse_repo_url,
)

logger = logging.getLogger(__name__)


class GithubCredentialsProvider(ABC):
    """Hands out a credential scoped to the owner/repository named by a URL."""

    @abstractmethod
    async def get_credentials(self, session: aiohttp.ClientSession, url: str) -> Optional[GithubCredentials]:
        ...


def _owner_and_repo(url: str) -> Tuple[str, Optional[str]]:
    segments = [segment for segment in urlparse(url).path.split("/") if segment]
    if not segments:
        raise InputError(f"Unable to determine the repository owner from {url}")
    return segments[0], segments[1] if len(segments) > 1 else None


class SingleInstanceGithubCredentialsProvider(GithubCredentialsProvider):
    """
    Credentials for one GitHub host: an app installation token when one of the
    configured apps is installed for the owner, otherwise the static token.
    """

    def __init__(self, integration: GithubIntegrationConfig):
        self.apps: List[GithubAppManager] = [
            GithubAppManager(app, integration.api_base_url) for app in integration.apps
        ]
        self.token = integration.token

    async def get_credentials(self, session: aiohttp.ClientSession, url: str) -> Optional[GithubCredentials]:
        owner, repo = _owner_and_repo(url)

        app_token = await self._get_app_token(session, owner, repo)
        if app_token:
            return GithubCredentials(token=app_token, type="app")

        if self.token is not None:
            return GithubCredentials(token=self.token, type="token")
        return None

    async def _get_app_token(self, session: aiohttp.ClientSession, owner: str, repo: Optional[str]) -> Optional[str]:
        # Apps without an installation for the owner are skipped; other errors are fatal.
        for app in self.apps:
            try:
                token = await app.get_installation_token(session, owner, repo)
            except NotFoundError as e:
                logger.debug(f"Skipping GitHub App {app.app_id}: {e}")
                continue
            if token:
                return token
        return None


class DefaultGithubCredentialsProvider(GithubCredentialsProvider):
    """Routes credential requests to the provider of the matching host."""

    def __init__(self, providers: Dict[str, GithubCredentialsProvider]):
        self._providers = providers

    @classmethod
    def from_integrations(cls, integrations: ScmIntegrationRegistry) -> "DefaultGithubCredentialsProvider":
        return cls({
            integration.host.lower(): SingleInstanceGithubCredentialsProvider(integration)
            for integration in integrations.github_integrations()
        })

    async def get_credentials(self, session: aiohttp.ClientSession, url: str) -> Optional[GithubCredentials]:
        host = urlparse(url).netloc.lower()
        provider = self._providers.get(host)
        if provider is None:
            raise InputError(
                f"There is no GitHub integration that matches {url}. Please add a configuration for an integration."
            )
        return await provider.get_credentials(session, url)


async def get_client_options(
    session: aiohttp.ClientSession,
    integrations: ScmIntegrationRegistry,
    repo_url: str,
    credentials_provider: Optional[GithubCredentialsProvider] = None,
    token: Optional[SecretStr] = None,
) -> GithubClientOptions:
    """
    Builds the API endpoint and bearer token used for one invocation.

    An explicit token wins. Otherwise the credentials provider (or the default one
    derived from the integrations) is asked for a credential scoped to the repository.

    Raises:
        InputError: If no credential is available for the repository.
    """
    identity = parse_repo_url(repo_url, integrations)
    integration = integrations.by_host(identity.host)

    if token is not None and token.get_secret_value():
        return GithubClientOptions(api_base_url=integration.api_base_url, token=token)

    provider = credentials_provider or DefaultGithubCredentialsProvider.from_integrations(integrations)
    credentials = await provider.get_credentials(
        session, f"https://{identity.host}/{identity.owner}/{identity.repo}"
    )
    if credentials is None:
        raise InputError(
            f"No token available for host: {identity.host}, with owner {identity.owner}, and repo {identity.repo}"
        )

    logger.info(f"Using {credentials.type} credentials for {identity.owner}/{identity.repo}.")
    return GithubClientOptions(api_base_url=integration.api_base_url, token=credentials.token)
