import aiohttp
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union
from pydantic import ValidationError

from github_repo_push.application.protection import enable_branch_protection_on_default_repo_branch
from github_repo_push.config import (
    DEFAULT_AUTHOR_EMAIL_KEY,
    DEFAULT_AUTHOR_NAME_KEY,
    DEFAULT_COMMIT_MESSAGE_KEY,
    Config,
    resolve_setting,
)
from github_repo_push.domain.exceptions import InputError
from github_repo_push.domain.models import (
    ActionInput,
    ActionOutput,
    GitAuthorInfo,
    ProtectionOutcome,
    ProtectionResult,
)
from github_repo_push.infrastructure.credentials import GithubCredentialsProvider, get_client_options
from github_repo_push.infrastructure.git import init_repo_and_push
from github_repo_push.infrastructure.github_client import GitHubRestClient
from github_repo_push.infrastructure.integrations import (
    ScmIntegrationRegistry,
    get_repo_source_directory,
    parse_repo_url,
)

ACTION_ID = "github:repo:push"
DEFAULT_BRANCH = "master"
DEFAULT_COMMIT_MESSAGE = "initial commit"
# GitHub accepts any token as password when the username is this sentinel
GIT_USERNAME = "x-access-token"


@dataclass
class ActionContext:
    """What the task runner hands to one invocation of the action."""
    workspace_path: Union[str, Path]
    input: Union[ActionInput, Mapping[str, Any]]
    output: Callable[[str, Any], None]
    logger: logging.Logger


class GithubRepoPushAction:
    """
    Initializes a git repository of contents in the workspace and publishes it
    to an existing GitHub repository, then protects its default branch.

    Every step up to and including the push is fatal on failure. Branch
    protection is best effort: its failure is logged as a warning and the
    action still succeeds.
    """

    id = ACTION_ID
    description = "Initializes a git repository of contents in workspace and publishes it to GitHub."

    def __init__(
        self,
        integrations: ScmIntegrationRegistry,
        config: Config,
        credentials_provider: Optional[GithubCredentialsProvider] = None,
        client_factory: Callable[..., GitHubRestClient] = GitHubRestClient,
        publisher: Callable[..., Any] = init_repo_and_push,
    ):
        self.integrations = integrations
        self.config = config
        self.credentials_provider = credentials_provider
        self.client_factory = client_factory
        self.publisher = publisher

    @staticmethod
    def _parse_input(raw_input: Union[ActionInput, Mapping[str, Any]]) -> ActionInput:
        if isinstance(raw_input, ActionInput):
            return raw_input
        try:
            return ActionInput.model_validate(raw_input)
        except ValidationError as e:
            raise InputError(f"Invalid input passed to action {ACTION_ID}: {e}") from e

    async def handler(self, ctx: ActionContext) -> ActionOutput:
        action_input = self._parse_input(ctx.input)

        identity = parse_repo_url(action_input.repo_url, self.integrations)
        if not identity.owner:
            raise InputError("Invalid repository owner provided in repoUrl")
        owner, repo = identity.owner, identity.repo

        source_dir = get_repo_source_directory(ctx.workspace_path, action_input.source_path)

        # One branch name for the push, the protection rule and the contents URL.
        default_branch = resolve_setting(action_input.default_branch, None, DEFAULT_BRANCH)
        protect_default_branch = resolve_setting(action_input.protect_default_branch, None, True)
        require_code_owner_reviews = resolve_setting(action_input.require_code_owner_reviews, None, False)
        required_status_check_contexts = resolve_setting(action_input.required_status_check_contexts, None, [])
        commit_message = resolve_setting(
            action_input.git_commit_message,
            self.config.get_optional_string(DEFAULT_COMMIT_MESSAGE_KEY),
            DEFAULT_COMMIT_MESSAGE,
        )
        git_author_info = GitAuthorInfo(
            name=resolve_setting(action_input.git_author_name, self.config.get_optional_string(DEFAULT_AUTHOR_NAME_KEY)),
            email=resolve_setting(action_input.git_author_email, self.config.get_optional_string(DEFAULT_AUTHOR_EMAIL_KEY)),
        )

        async with aiohttp.ClientSession() as session:
            client_options = await get_client_options(
                session,
                self.integrations,
                action_input.repo_url,
                credentials_provider=self.credentials_provider,
                token=action_input.token,
            )
            client = self.client_factory(client_options)

            ctx.logger.info(f"Fetching repository metadata for {owner}/{repo}")
            target_repo = await client.get_repository(session, owner, repo)

            remote_url = target_repo.clone_url
            repo_contents_url = f"{target_repo.html_url}/blob/{default_branch}"

            await self.publisher(
                dir=source_dir,
                remote_url=remote_url,
                default_branch=default_branch,
                auth=aiohttp.BasicAuth(GIT_USERNAME, client_options.token.get_secret_value()),
                commit_message=commit_message,
                git_author_info=git_author_info,
                log=ctx.logger,
            )

            protection = ProtectionResult(outcome=ProtectionOutcome.SKIPPED)
            if protect_default_branch:
                protection = await enable_branch_protection_on_default_repo_branch(
                    session,
                    client,
                    owner=owner,
                    repo_name=repo,
                    default_branch=default_branch,
                    require_code_owner_reviews=require_code_owner_reviews,
                    required_status_check_contexts=required_status_check_contexts,
                    log=ctx.logger,
                )
            if protection.failed:
                ctx.logger.warning(f"Skipping: default branch protection on '{repo}', {protection.message}")

        ctx.output("remoteUrl", remote_url)
        ctx.output("repoContentsUrl", repo_contents_url)
        return ActionOutput(remote_url=remote_url, repo_contents_url=repo_contents_url)
