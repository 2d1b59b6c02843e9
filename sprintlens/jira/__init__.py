"""
Jira module for sprintlens.

Retrieval engine turning a project name/key and loose sprint identifiers
into a categorized backlog snapshot:
- Transport with retry/backoff and cancellation
- Project and sprint resolution
- Paginated JQL search with Agile API fallback
- Issue categorization and ADF flattening
- Static tool table for agent integrations
"""

from .config import HttpSettings, JiraCredentials, load_config
from .errors import (
    ConfigError,
    JiraAuthError,
    JiraDataError,
    JiraError,
    JiraNotFoundError,
    JiraRequestError,
    RetrievalCancelled,
)
from .models import IssueSummary, ProjectInfo, SprintInfo, SprintIssues
from .service import JiraService
from .tools import TOOLS, call_tool, tool_descriptions
from .transport import CancellationToken, JiraTransport

__all__ = [
    'CancellationToken',
    'ConfigError',
    'HttpSettings',
    'IssueSummary',
    'JiraAuthError',
    'JiraCredentials',
    'JiraDataError',
    'JiraError',
    'JiraNotFoundError',
    'JiraRequestError',
    'JiraService',
    'JiraTransport',
    'ProjectInfo',
    'RetrievalCancelled',
    'SprintInfo',
    'SprintIssues',
    'TOOLS',
    'call_tool',
    'load_config',
    'tool_descriptions',
]
