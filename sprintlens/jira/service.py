"""
Jira retrieval engine.

``JiraService`` ties the resolvers, the search and the categorizer together
into the operations exposed to callers: project info, live sprints, and the
categorized sprint-issue snapshot.
"""

import logging
from typing import List, Optional

import requests

from .categorize import categorize_issues, parse_issue
from .config import HttpSettings, JiraCredentials
from .errors import JiraError, RetrievalCancelled
from .models import IssueSummary, ProjectInfo, SprintInfo, SprintIssues
from .projects import ProjectResolver
from .search import IssueSearch, SearchResult, build_sprint_jql
from .sprint_tokens import SprintTokenResolver, clean_sprint_tokens, match_sprint_tokens
from .sprints import SprintDirectory
from .transport import CancellationToken, JiraTransport

logger = logging.getLogger(__name__)


class JiraService:
    """
    Read-only access to a Jira site.

    The instance holds only the immutable credentials and the HTTP session;
    every call keeps its working state local, so one instance can serve
    several callers.
    """

    def __init__(
        self,
        credentials: JiraCredentials,
        settings: Optional[HttpSettings] = None,
        transport: Optional[JiraTransport] = None,
    ):
        self.credentials = credentials
        self.transport = transport or JiraTransport(credentials, settings)
        self.projects = ProjectResolver(self.transport)
        self.directory = SprintDirectory(self.transport)
        self.sprint_resolver = SprintTokenResolver(self.directory)
        self.issue_search = IssueSearch(self.transport)

    def get_project_info(self, project_name: str, cancel_token: Optional[CancellationToken] = None) -> ProjectInfo:
        return self.projects.get_project_info(project_name, cancel_token=cancel_token)

    def get_active_and_future_sprints(
        self, project_name: str, cancel_token: Optional[CancellationToken] = None
    ) -> List[SprintInfo]:
        project_key = self.projects.resolve(project_name, cancel_token=cancel_token)
        return self.directory.active_and_future_sprints(project_key, cancel_token)

    def get_sprint_issues(
        self,
        project_name: str,
        sprint_ids: Optional[List[str]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> SprintIssues:
        """
        Retrieve the categorized issues of a project, optionally limited to
        sprints.

        Args:
            project_name: project name or key, resolved fuzzily
            sprint_ids: sprint ids or name fragments; when omitted the
                whole project is queried and the active/future sprints are
                reported alongside, when nothing resolves the whole project
                is queried and no sprints are reported

        Returns:
            SprintIssues snapshot
        """
        project_key = self.projects.resolve(project_name, cancel_token=cancel_token)

        available = self.directory.active_and_future_sprints(project_key, cancel_token)
        tokens = clean_sprint_tokens(sprint_ids)
        selected = self.sprint_resolver.resolve(project_key, tokens, available, cancel_token)
        if tokens and not selected:
            logger.warning(f"No sprint matched {tokens}; querying the whole project {project_key}")

        filtered = selected if tokens else []
        jql = build_sprint_jql(project_key, filtered)
        primary = self.issue_search.search(jql, cancel_token=cancel_token)

        found = primary
        if filtered and not primary.issues:
            found = self._legacy_fallback(selected, primary, cancel_token)

        categorized = categorize_issues(found.issues, found.epic_link_field_id)

        if filtered:
            epics = self._backfill_epics(project_key, categorized.referenced_epic_keys(), found, cancel_token)
        else:
            epics = categorized.epics

        result = SprintIssues(
            project_name=project_name,
            sprint_ids=[str(s.id) for s in selected],
            epics=epics,
            stories=categorized.stories,
            tasks=categorized.tasks,
            subtasks=categorized.subtasks,
            related_to_story=categorized.related_to_story,
            sprints=list(selected),
        )
        logger.info(f"Retrieved issues for {project_key}: {result.counts()}")
        return result

    def _legacy_fallback(
        self,
        sprints: List[SprintInfo],
        primary: SearchResult,
        cancel_token: Optional[CancellationToken],
    ) -> SearchResult:
        logger.info(f"Search returned nothing for sprints {[s.id for s in sprints]}, trying the Agile sprint listing")
        try:
            legacy = self.issue_search.legacy_sprint_issues([s.id for s in sprints], cancel_token=cancel_token)
        except RetrievalCancelled:
            raise
        except (JiraError, requests.RequestException) as e:
            logger.warning(f"Agile API fallback failed: {e}")
            return primary

        if not legacy.issues:
            return primary
        if legacy.epic_link_field_id is None:
            legacy.epic_link_field_id = primary.epic_link_field_id
        return legacy

    def _backfill_epics(
        self,
        project_key: str,
        referenced_keys: List[str],
        found: SearchResult,
        cancel_token: Optional[CancellationToken],
    ) -> List[IssueSummary]:
        """Epics of the project that retrieved stories point at."""
        if not referenced_keys:
            return []
        try:
            epics = self.issue_search.project_epics(project_key, cancel_token=cancel_token)
        except RetrievalCancelled:
            raise
        except (JiraError, requests.RequestException) as e:
            logger.warning(f"Failed to fetch epics for {project_key}: {e}")
            return []

        wanted = set(referenced_keys)
        field_id = found.epic_link_field_id or epics.epic_link_field_id
        parsed = [parse_issue(raw, field_id) for raw in epics.issues]
        return [epic for epic in parsed if epic.key in wanted]

    def get_sprint_issues_debug(
        self,
        project_name: str,
        sprint_ids: Optional[List[str]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> SprintIssues:
        """Log every resolution step, then run ``get_sprint_issues``."""
        project_key = self.projects.resolve(project_name, cancel_token=cancel_token)
        logger.info(f"Resolved project '{project_name}' -> key '{project_key}'")

        boards = self.directory.boards_for_project(project_key, cancel_token)
        logger.info(f"Boards for project: {', '.join(str(b) for b in boards) or 'none'}")

        available = self.directory.active_and_future_sprints(project_key, cancel_token)
        logger.info(
            "Active/Future sprints: " + (", ".join(f"{s.id}:{s.name}({s.state})" for s in available) or "none")
        )

        tokens = clean_sprint_tokens(sprint_ids)
        logger.info(f"Provided sprint tokens: {', '.join(tokens) or 'none'}")

        matched = match_sprint_tokens(tokens, available) if tokens else list(available)
        logger.info(f"Matched among active/future: {[s.id for s in matched]}")
        if tokens and not matched:
            resolved, unresolved = self.sprint_resolver.resolve_identifiers(project_key, tokens, cancel_token)
            logger.info(f"Broad resolution: resolved={resolved}, unresolved={unresolved}")

        result = self.get_sprint_issues(project_name, sprint_ids, cancel_token=cancel_token)
        filtered = result.sprints if tokens else []
        logger.info(f"Final JQL: {build_sprint_jql(project_key, filtered)}")
        counts = result.counts()
        logger.info(
            f"Retrieved issues - Epics: {counts['epics']}, Stories: {counts['stories']}, "
            f"Tasks: {counts['tasks']}, Subtasks: {counts['subtasks']}"
        )
        if filtered:
            logger.info(f"Selected sprint IDs: {', '.join(result.sprint_ids)}")
        else:
            logger.info("No specific sprint filter applied (project-wide query)")
        return result

    def close(self) -> None:
        self.transport.close()
