from enum import Enum
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, ConfigDict, SecretStr

class RepositoryIdentity(BaseModel):
    """
    Owner/repository pair resolved from a repository locator.
    The owner stays optional here; the push workflow rejects it when absent.
    """
    model_config = ConfigDict(frozen=True)

    host: str = Field(..., description="Hostname of the GitHub integration, e.g. github.com")
    owner: Optional[str] = Field(None, description="User or organisation login owning the repository")
    repo: str = Field(..., min_length=1, description="Name of the repository")


class ActionInput(BaseModel):
    """
    Parameters of one `github:repo:push` invocation.

    Fields use the camelCase names of the scaffolder template on the wire.
    Optional values stay None when omitted so defaults are resolved in one place.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    repo_url: str = Field(..., alias="repoUrl", min_length=1)
    description: Optional[str] = None
    default_branch: Optional[str] = Field(None, alias="defaultBranch")
    protect_default_branch: Optional[bool] = Field(None, alias="protectDefaultBranch")
    git_commit_message: Optional[str] = Field(None, alias="gitCommitMessage")
    git_author_name: Optional[str] = Field(None, alias="gitAuthorName")
    git_author_email: Optional[str] = Field(None, alias="gitAuthorEmail")
    require_code_owner_reviews: Optional[bool] = Field(None, alias="requireCodeOwnerReviews")
    required_status_check_contexts: Optional[List[str]] = Field(None, alias="requiredStatusCheckContexts")
    source_path: Optional[str] = Field(None, alias="sourcePath")
    token: Optional[SecretStr] = None


class GitAuthorInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    email: Optional[str] = None


class GithubCredentials(BaseModel):
    """A bearer credential valid for one invocation only."""
    model_config = ConfigDict(frozen=True)

    token: SecretStr
    type: Literal["app", "token"]


class GithubClientOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_base_url: str = Field(..., description="Root of the GitHub REST API for the integration")
    token: SecretStr


class RemoteRepositoryMetadata(BaseModel):
    """Clone and browse URLs of an existing GitHub repository."""
    model_config = ConfigDict(frozen=True)

    clone_url: str = Field(..., description="HTTPS clone endpoint of the repository")
    html_url: str = Field(..., description="Human browsable URL of the repository")


class ActionOutput(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    remote_url: str = Field(..., alias="remoteUrl")
    repo_contents_url: str = Field(..., alias="repoContentsUrl")


class ProtectionOutcome(str, Enum):
    SKIPPED = "skipped"
    APPLIED = "applied"
    WARNED = "warned"
    FAILED = "failed"


class ProtectionResult(BaseModel):
    """Typed result of the branch protection step, checked once by the caller."""
    model_config = ConfigDict(frozen=True)

    outcome: ProtectionOutcome
    message: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.outcome is ProtectionOutcome.FAILED
