class ScaffolderException(Exception):
    """Base exception for all repository publishing errors."""
    pass

class InputError(ScaffolderException):
    """Raised when the action input cannot be acted on."""
    pass

class NotAllowedError(ScaffolderException):
    """Raised when a path or operation falls outside what the action may touch."""
    pass

class ConfigurationError(ScaffolderException):
    """Raised when configuration or integration settings are malformed."""
    pass

class GitHubApiError(ScaffolderException):
    """Raised when the GitHub REST API answers with a non-2xx status."""
    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"{status} {message}")

class NotFoundError(GitHubApiError):
    """Raised when a GitHub resource does not exist or is not visible."""
    def __init__(self, message: str = "Not Found"):
        super().__init__(404, message)

class GitCommandError(ScaffolderException):
    """Raised when a git subprocess exits with a non-zero status."""
    def __init__(self, command: str, returncode: int, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"'{command}' failed with exit code {returncode}: {stderr.strip()}")
