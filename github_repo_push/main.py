import logging
import sys
from typing import Optional
from dotenv import load_dotenv

from github_repo_push.application.push_action import GithubRepoPushAction
from github_repo_push.config import Config
from github_repo_push.infrastructure.credentials import GithubCredentialsProvider
from github_repo_push.infrastructure.integrations import ScmIntegrationRegistry


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


def create_github_repo_push_action(
    credentials_provider: Optional[GithubCredentialsProvider] = None,
) -> GithubRepoPushAction:
    """
    Wires the action for a task runner from the process environment.
    Values in a local .env file are loaded first and never override real variables.
    """
    load_dotenv()

    return GithubRepoPushAction(
        integrations=ScmIntegrationRegistry.from_env(),
        config=Config.from_env(),
        credentials_provider=credentials_provider,
    )
