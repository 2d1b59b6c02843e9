"""
JQL search with pagination.

The primary search goes through ``/rest/api/3/search/jql``; large queries
are sent as POST bodies and a GET rejected with 414 is replayed as POST.
The legacy Agile sprint listing is available for sprint-scoped fallbacks.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .categorize import resolve_epic_link_field_id
from .errors import JiraDataError
from .models import SprintInfo
from .transport import CancellationToken, HttpResult, JiraTransport, raise_for_jira_status

logger = logging.getLogger(__name__)

SEARCH_PATH = "rest/api/3/search/jql"
LEGACY_SPRINT_ISSUES_PATH = "rest/agile/1.0/sprint/{sprint_id}/issue"

SEARCH_PAGE_SIZE = 100
POST_THRESHOLD = 1500
URI_TOO_LONG = 414

SEARCH_FIELDS = [
    "summary",
    "issuetype",
    "status",
    "parent",
    "subtasks",
    "description",
    "epic",
    "assignee",
    "priority",
    "components",
    "fixVersions",
    "labels",
    "created",
    "updated",
]
LEGACY_FIELDS = [
    "summary",
    "issuetype",
    "status",
    "parent",
    "subtasks",
    "description",
    "epic",
    "assignee",
    "priority",
]
EPIC_FIELDS = ["summary", "issuetype", "status", "description"]


@dataclass
class SearchResult:
    issues: List[Dict[str, Any]] = field(default_factory=list)
    epic_link_field_id: Optional[str] = None


def build_sprint_jql(project_key: str, sprints: Iterable[SprintInfo]) -> str:
    sprint_ids = ",".join(str(s.id) for s in sprints)
    if sprint_ids:
        return f"project = {project_key} AND sprint in ({sprint_ids}) ORDER BY Rank, created DESC"
    return f"project = {project_key} ORDER BY Rank, created DESC"


def build_epic_jql(project_key: str) -> str:
    return f"project = {project_key} AND issuetype = Epic ORDER BY Rank"


def _page_object(result: HttpResult, action: str) -> Dict[str, Any]:
    data = result.json()
    if not isinstance(data, dict):
        raise JiraDataError(f"Jira {action} returned a non-object page")
    return data


class IssueSearch:
    def __init__(self, transport: JiraTransport, page_size: int = SEARCH_PAGE_SIZE):
        self.transport = transport
        self.page_size = page_size

    def _fetch_page(
        self,
        jql: str,
        start_at: int,
        fields: List[str],
        next_page_token: Optional[str],
        cancel_token: Optional[CancellationToken],
    ) -> HttpResult:
        body: Dict[str, Any] = {
            "jql": jql,
            "startAt": start_at,
            "maxResults": self.page_size,
            "fields": list(fields),
            "expand": ["names"],
        }
        if next_page_token:
            body["nextPageToken"] = next_page_token

        if len(jql) > POST_THRESHOLD:
            return self.transport.post_json(SEARCH_PATH, body, cancel_token=cancel_token)

        params = dict(body, fields=",".join(fields), expand="names")
        result = self.transport.get(SEARCH_PATH, params=params, cancel_token=cancel_token)
        if result.status_code == URI_TOO_LONG:
            logger.debug(f"Search URI too long at startAt={start_at}, retrying as POST")
            result = self.transport.post_json(SEARCH_PATH, body, cancel_token=cancel_token)
        return result

    def search(
        self,
        jql: str,
        fields: Optional[List[str]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> SearchResult:
        """
        Fetch every issue matching ``jql``.

        Paging stops once the server-reported ``total`` is reached, on an
        empty page, or when the server reports neither a total nor a
        ``nextPageToken``. The Epic Link field id is read from the ``names``
        dictionary of the first non-empty page.
        """
        fields = fields or SEARCH_FIELDS
        result = SearchResult()
        names_checked = False
        start_at = 0
        next_page_token = None

        logger.debug(f"Searching issues: {jql}")
        while True:
            response = self._fetch_page(jql, start_at, fields, next_page_token, cancel_token)
            raise_for_jira_status(response, "search")
            page = _page_object(response, "search")

            issues = [i for i in page.get("issues") or [] if isinstance(i, dict)]
            if issues and not names_checked:
                result.epic_link_field_id = resolve_epic_link_field_id(page.get("names"))
                names_checked = True
            result.issues.extend(issues)
            start_at += len(issues)

            total = page.get("total")
            next_page_token = page.get("nextPageToken")
            logger.debug(f"Search page: received={len(issues)}, fetched={len(result.issues)}, total={total}")

            if not issues:
                break
            if isinstance(total, int):
                if len(result.issues) >= total:
                    break
            elif not next_page_token:
                break

        logger.info(f"Search returned {len(result.issues)} issues")
        return result

    def legacy_sprint_issues(
        self,
        sprint_ids: Iterable[int],
        fields: Optional[List[str]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> SearchResult:
        """
        List issues per sprint through the Agile API, merged by issue key.

        A sprint whose listing fails is skipped with a warning.
        """
        fields = fields or LEGACY_FIELDS
        merged: Dict[str, Dict[str, Any]] = {}
        epic_link_field_id = None

        for sprint_id in dict.fromkeys(sprint_ids):
            start_at = 0
            while True:
                params = {
                    "startAt": start_at,
                    "maxResults": self.page_size,
                    "fields": ",".join(fields),
                    "expand": "names",
                }
                response = self.transport.get(
                    LEGACY_SPRINT_ISSUES_PATH.format(sprint_id=sprint_id), params=params, cancel_token=cancel_token
                )
                if response.status_code in (401, 403):
                    raise_for_jira_status(response, "sprint issue listing")
                if not response.ok:
                    logger.warning(f"Sprint {sprint_id} issue listing failed: HTTP {response.status_code}")
                    break

                page = _page_object(response, "sprint issue listing")
                issues = [i for i in page.get("issues") or [] if isinstance(i, dict)]
                if epic_link_field_id is None:
                    epic_link_field_id = resolve_epic_link_field_id(page.get("names"))
                for issue in issues:
                    key = issue.get("key")
                    if key:
                        merged[key] = issue

                if not issues:
                    break
                start_at += len(issues)
                total = page.get("total")
                if not isinstance(total, int) or start_at >= total:
                    break

        logger.info(f"Legacy sprint listing returned {len(merged)} issues")
        return SearchResult(issues=list(merged.values()), epic_link_field_id=epic_link_field_id)

    def project_epics(self, project_key: str, cancel_token: Optional[CancellationToken] = None) -> SearchResult:
        return self.search(build_epic_jql(project_key), fields=EPIC_FIELDS, cancel_token=cancel_token)
