import aiohttp
import asyncio
import logging
from typing import List, Optional

from github_repo_push.domain.exceptions import GitHubApiError, ScaffolderException
from github_repo_push.domain.models import ProtectionOutcome, ProtectionResult
from github_repo_push.infrastructure.github_client import GitHubRestClient

logger = logging.getLogger(__name__)

GITHUB_PRO_REQUIRED = "Upgrade to GitHub Pro or make this repository public to enable this feature"


async def enable_branch_protection_on_default_repo_branch(
    session: aiohttp.ClientSession,
    client: GitHubRestClient,
    owner: str,
    repo_name: str,
    default_branch: str,
    require_code_owner_reviews: bool = False,
    required_status_check_contexts: Optional[List[str]] = None,
    log: Optional[logging.Logger] = None,
) -> ProtectionResult:
    """
    Requires reviewed pull requests (and optionally code owner reviews and status
    checks) on the default branch.

    Failures from GitHub or the network come back as a FAILED result rather than
    an exception; anything else is a bug and propagates.
    """
    log = log or logger
    try:
        await client.update_branch_protection(
            session,
            owner,
            repo_name,
            default_branch,
            require_code_owner_reviews=require_code_owner_reviews,
            required_status_check_contexts=required_status_check_contexts or [],
        )
    except GitHubApiError as e:
        if GITHUB_PRO_REQUIRED in e.message:
            log.warning("Branch protection was not enabled as it requires GitHub Pro for private repositories")
            return ProtectionResult(outcome=ProtectionOutcome.WARNED, message=str(e))
        return ProtectionResult(outcome=ProtectionOutcome.FAILED, message=str(e))
    except (ScaffolderException, aiohttp.ClientError, asyncio.TimeoutError) as e:
        return ProtectionResult(outcome=ProtectionOutcome.FAILED, message=str(e) or type(e).__name__)

    log.info(f"Enabled branch protection on {owner}/{repo_name}@{default_branch}")
    return ProtectionResult(outcome=ProtectionOutcome.APPLIED)
