import aiohttp
import logging
from typing import Any, Dict, List
from urllib.parse import quote

from github_repo_push.domain.exceptions import GitHubApiError, NotFoundError
from github_repo_push.domain.models import GithubClientOptions, RemoteRepositoryMetadata
from github_repo_push.infrastructure.acl import GitHubTranslator

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"
USER_AGENT = "github-repo-push"
REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=60, connect=10)


async def read_json(response: aiohttp.ClientResponse) -> Any:
    """
    Returns the JSON body of a successful response, or raises the matching
    GitHubApiError carrying GitHub's own error message.
    """
    if response.status >= 400:
        try:
            body = await response.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            body = None
        message = body.get("message") if isinstance(body, dict) else None
        message = message or response.reason or "Unknown GitHub API error"
        if response.status == 404:
            raise NotFoundError(message)
        raise GitHubApiError(response.status, message)

    return await response.json(content_type=None)


class GitHubRestClient:
    """
    Client for the parts of the GitHub REST API the push action needs.
    Requests are made exactly once; failures surface as GitHubApiError.
    """

    def __init__(self, options: GithubClientOptions):
        self.headers = {
            "Authorization": f"Bearer {options.token.get_secret_value()}",
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
            "X-GitHub-Api-Version": API_VERSION,
        }
        self.api_url = options.api_base_url.rstrip("/")

    def _repo_url(self, owner: str, repo: str) -> str:
        return f"{self.api_url}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"

    async def get_repository(
        self,
        session: aiohttp.ClientSession,
        owner: str,
        repo: str,
    ) -> RemoteRepositoryMetadata:
        """
        Fetches clone and browse URLs of an existing repository.

        Raises:
            NotFoundError: If the repository does not exist or the token cannot see it.
            GitHubApiError: On any other non-2xx response.
        """
        url = self._repo_url(owner, repo)
        logger.debug(f"GET {url}")
        async with session.get(url, headers=self.headers, timeout=REQUEST_TIMEOUT) as response:
            data = await read_json(response)
        return GitHubTranslator.to_repository_metadata(data)

    async def update_branch_protection(
        self,
        session: aiohttp.ClientSession,
        owner: str,
        repo: str,
        branch: str,
        require_code_owner_reviews: bool = False,
        required_status_check_contexts: List[str] = None,
    ) -> Dict[str, Any]:
        """
        Replaces the protection rule of `branch` with one requiring a reviewed pull
        request, optionally a code owner review, and the given status checks.
        """
        url = f"{self._repo_url(owner, repo)}/branches/{quote(branch, safe='')}/protection"
        payload = {
            "required_status_checks": {
                "strict": True,
                "contexts": list(required_status_check_contexts or []),
            },
            "enforce_admins": True,
            "required_pull_request_reviews": {
                "required_approving_review_count": 1,
                "require_code_owner_reviews": require_code_owner_reviews,
            },
            "restrictions": None,
        }
        logger.debug(f"PUT {url}")
        async with session.put(url, json=payload, headers=self.headers, timeout=REQUEST_TIMEOUT) as response:
            return await read_json(response)
