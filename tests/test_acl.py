import unittest

from github_repo_push.infrastructure.acl import GitHubTranslator


class TestGitHubTranslator(unittest.TestCase):
    def test_to_repository_metadata_reads_clone_and_html_urls(self) -> None:
        raw_repo = {
            "id": 1296269,
            "name": "repo",
            "owner": {"login": "org"},
            "clone_url": "https://github.com/org/repo.git",
            "html_url": "https://github.com/org/repo",
            "default_branch": "main",
        }

        metadata = GitHubTranslator.to_repository_metadata(raw_repo)

        self.assertEqual(metadata.clone_url, "https://github.com/org/repo.git")
        self.assertEqual(metadata.html_url, "https://github.com/org/repo")

    def test_trailing_slash_is_removed_from_html_url(self) -> None:
        metadata = GitHubTranslator.to_repository_metadata({
            "clone_url": "https://github.com/org/repo.git",
            "html_url": "https://github.com/org/repo/",
        })

        self.assertEqual(metadata.html_url, "https://github.com/org/repo")

    def test_missing_clone_url_raises(self) -> None:
        raw_repo = {"html_url": "https://github.com/org/repo"}

        with self.assertRaises(ValueError):
            GitHubTranslator.to_repository_metadata(raw_repo)
