"""
Local git operations for publishing a workspace as a repository's first history.

The credential is handed to git as an HTTP header through `-c` for the push
only; it is never written to `.git/config`, the remote URL or the logs.
"""

import aiohttp
import asyncio
import logging
import os
from pathlib import Path
from typing import Optional, Sequence, Union

from github_repo_push.domain.exceptions import GitCommandError
from github_repo_push.domain.models import GitAuthorInfo

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR_NAME = "Scaffolder"
DEFAULT_AUTHOR_EMAIL = "scaffolder@backstage.io"
REMOTE_NAME = "origin"


async def run_git(
    directory: Union[str, Path],
    *args: str,
    config: Sequence[str] = (),
) -> str:
    """
    Runs one git command in `directory` and returns its stdout.

    `config` entries are passed as `-c key=value` and are left out of the command
    text used in errors, since they may carry credentials.

    Raises:
        GitCommandError: If git exits with a non-zero status.
    """
    command = ["git"]
    for entry in config:
        command.extend(["-c", entry])
    command.extend(args)
    display = " ".join(["git", *args])

    process = await asyncio.create_subprocess_exec(
        *command,
        cwd=str(directory),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
    )
    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        raise GitCommandError(display, process.returncode, stderr.decode(errors="replace"))
    return stdout.decode(errors="replace").strip()


async def init_repo_and_push(
    dir: Union[str, Path],
    remote_url: str,
    default_branch: str,
    auth: aiohttp.BasicAuth,
    commit_message: str,
    git_author_info: Optional[GitAuthorInfo] = None,
    log: Optional[logging.Logger] = None,
) -> str:
    """
    Commits everything in `dir` and pushes it as `default_branch` of `remote_url`.

    The repository is initialised on `default_branch` unless `dir` already holds
    one. Missing author fields fall back to the Scaffolder identity.

    Returns:
        The hash of the created commit.

    Raises:
        GitCommandError: If any git step fails; nothing after it is attempted.
    """
    log = log or logger
    directory = Path(dir)

    if (directory / ".git").exists():
        log.info(f"Using existing git repository in {directory}")
    else:
        log.info(f"Init git repository {directory}")
        await run_git(directory, "init")
        await run_git(directory, "symbolic-ref", "HEAD", f"refs/heads/{default_branch}")

    await run_git(directory, "add", "--all", ".")

    author = git_author_info or GitAuthorInfo()
    author_name = author.name or DEFAULT_AUTHOR_NAME
    author_email = author.email or DEFAULT_AUTHOR_EMAIL
    await run_git(
        directory,
        "commit", "--allow-empty", "-m", commit_message,
        config=[f"user.name={author_name}", f"user.email={author_email}", "commit.gpgsign=false"],
    )
    commit_hash = await run_git(directory, "rev-parse", "HEAD")
    log.info(f"Committed {commit_hash} as {author_name} <{author_email}>")

    remotes = (await run_git(directory, "remote")).split()
    if REMOTE_NAME in remotes:
        await run_git(directory, "remote", "set-url", REMOTE_NAME, remote_url)
    else:
        await run_git(directory, "remote", "add", REMOTE_NAME, remote_url)

    log.info(f"Pushing {default_branch} to {remote_url}")
    await run_git(
        directory,
        "push", REMOTE_NAME, f"HEAD:refs/heads/{default_branch}",
        config=[f"http.extraHeader=Authorization: {auth.encode()}"],
    )
    return commit_hash
