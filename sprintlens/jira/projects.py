"""
Project resolution: map a user-supplied project name or key onto the
canonical Jira project key.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from .errors import JiraDataError
from .models import ProjectInfo
from .transport import CancellationToken, JiraTransport, raise_for_jira_status

logger = logging.getLogger(__name__)

PROJECT_SEARCH_PATH = "rest/api/3/project/search"
PROJECT_PATH = "rest/api/3/project/{key}"


def _first_match(candidates: List[Dict[str, Any]], predicate: Callable[[str, str], bool]) -> Optional[str]:
    for candidate in candidates:
        key = candidate.get("key")
        if not key:
            continue
        if predicate(str(key).lower(), str(candidate.get("name") or "").lower()):
            return key
    return None


def pick_project_key(query: str, candidates: List[Dict[str, Any]]) -> Optional[str]:
    """
    Choose a project key from search candidates.

    Precedence: exact key, exact name, then key or name containing the query.
    All comparisons are case-insensitive and the first candidate wins within
    a tier.
    """
    needle = query.lower()
    tiers = (
        lambda key, name: key == needle,
        lambda key, name: name == needle,
        lambda key, name: needle in key or needle in name,
    )
    for predicate in tiers:
        key = _first_match(candidates, predicate)
        if key is not None:
            return key
    return None


class ProjectResolver:
    def __init__(self, transport: JiraTransport):
        self.transport = transport

    def search(self, query: str, cancel_token: Optional[CancellationToken] = None) -> List[Dict[str, Any]]:
        result = self.transport.get(PROJECT_SEARCH_PATH, params={"query": query}, cancel_token=cancel_token)
        raise_for_jira_status(result, "project search")
        data = result.json()
        if not isinstance(data, dict):
            raise JiraDataError("Project search response is not an object")
        return [v for v in data.get("values") or [] if isinstance(v, dict)]

    def resolve(self, project: str, cancel_token: Optional[CancellationToken] = None) -> str:
        """
        Resolve a project name or key to a canonical key.

        When nothing matches, the input is echoed back unverified so callers
        can still pass a key the search does not surface.
        """
        trimmed = (project or "").strip()
        if not trimmed:
            raise ValueError("Project key/name is blank")

        candidates = self.search(trimmed, cancel_token=cancel_token)
        if not candidates:
            logger.info(f"No projects matched '{trimmed}', using it as the project key")
            return trimmed

        key = pick_project_key(trimmed, candidates)
        if key is None:
            logger.warning(f"None of {len(candidates)} search results matched '{trimmed}', using it as the project key")
            return trimmed

        logger.info(f"Resolved project '{trimmed}' -> key '{key}'")
        return key

    def get_project_info(self, project: str, cancel_token: Optional[CancellationToken] = None) -> ProjectInfo:
        key = self.resolve(project, cancel_token=cancel_token)
        result = self.transport.get(PROJECT_PATH.format(key=key), cancel_token=cancel_token)
        raise_for_jira_status(result, "getProjectInfo", key=key)

        data = result.json()
        if not isinstance(data, dict):
            raise JiraDataError("Project response is not an object")

        values = {}
        for field_name in ("id", "key", "name"):
            value = data.get(field_name)
            if value is None:
                raise JiraDataError(f"Project {field_name} missing in response", field=field_name)
            values[field_name] = str(value)
        return ProjectInfo(**values)
