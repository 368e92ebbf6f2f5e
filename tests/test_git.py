import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import aiohttp

from github_repo_push.domain.exceptions import GitCommandError
from github_repo_push.domain.models import GitAuthorInfo
from github_repo_push.infrastructure.git import init_repo_and_push


class _FakeProcess:
    def __init__(self, returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"") -> None:
        self.returncode = returncode
        self._stdout = stdout
        self._stderr = stderr

    async def communicate(self):
        return self._stdout, self._stderr


def _subcommand(command):
    """Strips `git` and any `-c key=value` pairs from a recorded command."""
    args = list(command[1:])
    while args and args[0] == "-c":
        args = args[2:]
    return args


class _FakeGit:
    def __init__(self, remotes: bytes = b"", fail_on: str = None) -> None:
        self.commands = []
        self.remotes = remotes
        self.fail_on = fail_on

    async def __call__(self, *command, **kwargs):
        self.commands.append(list(command))
        args = _subcommand(command)
        if args[0] == self.fail_on:
            return _FakeProcess(1, stderr=b"! [rejected] master -> master (non-fast-forward)")
        if args[0] == "rev-parse":
            return _FakeProcess(stdout=b"abc123\n")
        if args[0] == "remote" and len(args) == 1:
            return _FakeProcess(stdout=self.remotes)
        return _FakeProcess()

    def subcommands(self):
        return [_subcommand(command) for command in self.commands]

    def find(self, name):
        return next(command for command in self.commands if _subcommand(command)[0] == name)


class TestInitRepoAndPush(unittest.IsolatedAsyncioTestCase):
    async def _push(self, directory, fake_git, **overrides):
        kwargs = dict(
            dir=directory,
            remote_url="https://github.com/org/repo.git",
            default_branch="main",
            auth=aiohttp.BasicAuth("x-access-token", "s3cret"),
            commit_message="initial commit",
        )
        kwargs.update(overrides)
        with patch("github_repo_push.infrastructure.git.asyncio.create_subprocess_exec", new=fake_git):
            return await init_repo_and_push(**kwargs)

    async def test_initialises_commits_and_pushes_default_branch(self) -> None:
        fake_git = _FakeGit()
        with tempfile.TemporaryDirectory() as tmp:
            commit_hash = await self._push(tmp, fake_git)

        self.assertEqual(commit_hash, "abc123")
        self.assertEqual(fake_git.subcommands(), [
            ["init"],
            ["symbolic-ref", "HEAD", "refs/heads/main"],
            ["add", "--all", "."],
            ["commit", "--allow-empty", "-m", "initial commit"],
            ["rev-parse", "HEAD"],
            ["remote"],
            ["remote", "add", "origin", "https://github.com/org/repo.git"],
            ["push", "origin", "HEAD:refs/heads/main"],
        ])

    async def test_push_sends_basic_auth_header_only_to_push(self) -> None:
        fake_git = _FakeGit()
        with tempfile.TemporaryDirectory() as tmp:
            await self._push(tmp, fake_git)

        expected = aiohttp.BasicAuth("x-access-token", "s3cret").encode()
        self.assertIn(f"http.extraHeader=Authorization: {expected}", fake_git.find("push"))
        for command in fake_git.commands:
            if _subcommand(command)[0] != "push":
                self.assertFalse(any(expected in part for part in command))
        self.assertNotIn("s3cret", " ".join(fake_git.find("remote")))

    async def test_author_falls_back_to_scaffolder(self) -> None:
        fake_git = _FakeGit()
        with tempfile.TemporaryDirectory() as tmp:
            await self._push(tmp, fake_git, git_author_info=GitAuthorInfo(email="dev@example.com"))

        commit = fake_git.find("commit")
        self.assertIn("user.name=Scaffolder", commit)
        self.assertIn("user.email=dev@example.com", commit)

    async def test_existing_repository_is_reused(self) -> None:
        fake_git = _FakeGit(remotes=b"origin\n")
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / ".git").mkdir()
            await self._push(tmp, fake_git)

        subcommands = fake_git.subcommands()
        self.assertNotIn(["init"], subcommands)
        self.assertIn(["remote", "set-url", "origin", "https://github.com/org/repo.git"], subcommands)

    async def test_rejected_push_raises_without_leaking_credentials(self) -> None:
        fake_git = _FakeGit(fail_on="push")
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(GitCommandError) as cm:
                await self._push(tmp, fake_git)

        self.assertEqual(cm.exception.returncode, 1)
        self.assertEqual(cm.exception.command, "git push origin HEAD:refs/heads/main")
        self.assertIn("non-fast-forward", str(cm.exception))
        self.assertNotIn("Authorization", str(cm.exception))

    async def test_failed_commit_stops_before_push(self) -> None:
        fake_git = _FakeGit(fail_on="commit")
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(GitCommandError):
                await self._push(tmp, fake_git)

        self.assertNotIn("push", [args[0] for args in fake_git.subcommands()])
