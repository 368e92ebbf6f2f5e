"""
GitHub App installation tokens.

Signs an app JWT, finds the installation belonging to a repository owner and
exchanges the JWT for an installation access token. Tokens are requested per
invocation and never cached.
"""

import aiohttp
import jwt
import logging
import time
from typing import Any, Dict, List, Optional

from github_repo_push.domain.exceptions import NotAllowedError, NotFoundError
from github_repo_push.infrastructure.github_client import API_VERSION, REQUEST_TIMEOUT, USER_AGENT, read_json
from github_repo_push.infrastructure.integrations import GithubAppConfig

logger = logging.getLogger(__name__)

# GitHub rejects app JWTs valid for more than ten minutes
JWT_LIFETIME_SECONDS = 540
JWT_CLOCK_DRIFT_SECONDS = 60
INSTALLATIONS_PAGE_SIZE = 100


class GithubAppManager:
    """Mints installation tokens for one configured GitHub App."""

    def __init__(self, config: GithubAppConfig, api_base_url: str):
        self.config = config
        self.api_url = api_base_url.rstrip("/")

    @property
    def app_id(self) -> str:
        return self.config.app_id

    def generate_jwt(self) -> str:
        now = int(time.time())
        payload = {
            "iat": now - JWT_CLOCK_DRIFT_SECONDS,
            "exp": now + JWT_LIFETIME_SECONDS,
            "iss": self.config.app_id,
        }
        return jwt.encode(payload, self.config.private_key.get_secret_value(), algorithm="RS256")

    def _headers(self, app_jwt: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {app_jwt}",
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
            "X-GitHub-Api-Version": API_VERSION,
        }

    def is_owner_allowed(self, owner: str) -> bool:
        allowed = self.config.allowed_installation_owners
        return not allowed or owner.lower() in {o.lower() for o in allowed}

    async def list_installations(self, session: aiohttp.ClientSession, app_jwt: str) -> List[Dict[str, Any]]:
        installations: List[Dict[str, Any]] = []
        page = 1
        while True:
            async with session.get(
                f"{self.api_url}/app/installations",
                params={"per_page": INSTALLATIONS_PAGE_SIZE, "page": page},
                headers=self._headers(app_jwt),
                timeout=REQUEST_TIMEOUT,
            ) as response:
                batch = await read_json(response)
            installations.extend(batch or [])
            if not batch or len(batch) < INSTALLATIONS_PAGE_SIZE:
                return installations
            page += 1

    async def get_installation_token(
        self,
        session: aiohttp.ClientSession,
        owner: str,
        repo: Optional[str] = None,
    ) -> Optional[str]:
        """
        Returns an installation access token for `owner`, or None when this app
        may not act for the owner.

        Raises:
            NotFoundError: If the app has no installation for `owner`.
            NotAllowedError: If the installation is suspended.
            GitHubApiError: On any failed API call.
        """
        if not self.is_owner_allowed(owner):
            logger.info(f"GitHub App {self.app_id} is not allowed to act for {owner}.")
            return None

        app_jwt = self.generate_jwt()
        installations = await self.list_installations(session, app_jwt)
        installation = next(
            (i for i in installations if (i.get("account") or {}).get("login", "").lower() == owner.lower()),
            None,
        )
        if installation is None:
            raise NotFoundError(f"No app installation found for {owner} in {self.app_id}")
        if installation.get("suspended_by"):
            raise NotAllowedError(f"The GitHub application for {owner} is suspended")

        body: Dict[str, Any] = {}
        if repo and installation.get("repository_selection") == "selected":
            body["repositories"] = [repo]

        async with session.post(
            f"{self.api_url}/app/installations/{installation['id']}/access_tokens",
            json=body,
            headers=self._headers(app_jwt),
            timeout=REQUEST_TIMEOUT,
        ) as response:
            data = await read_json(response)

        logger.info(f"Obtained installation token for {owner} from GitHub App {self.app_id}.")
        return data.get("token")
