from typing import Any, Dict
from github_repo_push.domain.models import RemoteRepositoryMetadata

class GitHubTranslator:
    """
    Anti-corruption layer that translates raw GitHub REST JSON responses into domain models.
    """

    @staticmethod
    def to_repository_metadata(raw_repo: Dict[str, Any]) -> RemoteRepositoryMetadata:
        """
        Transforms the body of `GET /repos/{owner}/{repo}` into RemoteRepositoryMetadata.

        Args:
            raw_repo (Dict[str, Any]): The raw JSON object from GitHub's REST response.

        Returns:
            RemoteRepositoryMetadata: The clone and browse URLs of the repository.
        """
        clone_url = raw_repo.get('clone_url')
        html_url = raw_repo.get('html_url')

        if not clone_url or not html_url:
            raise ValueError("clone_url and html_url are required to build RemoteRepositoryMetadata.")

        return RemoteRepositoryMetadata(
            clone_url=clone_url,
            html_url=html_url.rstrip('/'),
        )
