"""Exceptions raised by the Jira retrieval engine."""

from typing import Optional


class JiraError(Exception):
    """Base class for every Jira retrieval failure."""


class ConfigError(JiraError):
    """Configuration is missing or invalid."""


class JiraRequestError(JiraError):
    """The remote service answered with a status we cannot use."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class JiraAuthError(JiraRequestError):
    """Credentials were rejected (401) or lack permission (403)."""


class JiraNotFoundError(JiraRequestError):
    """The requested project or issue does not exist."""

    def __init__(self, message: str, key: Optional[str] = None, status_code: int = 404, body: str = ""):
        super().__init__(message, status_code=status_code, body=body)
        self.key = key


class JiraDataError(JiraError):
    """A response was malformed or missing a required field."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class RetrievalCancelled(JiraError):
    """The caller cancelled the retrieval or its deadline passed."""
