"""
Issue categorization.

Raw Jira issue records are partitioned into epics, stories, tasks and
subtasks, and subtasks are linked to the story (or other parent) they
belong to.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .adf import adf_to_plain_text
from .models import IssueSummary

logger = logging.getLogger(__name__)

EPIC_LINK_FIELD_NAME = "epic link"

EPIC_TYPES = {"epic"}
STORY_TYPES = {"story", "user story"}
TASK_TYPES = {"task", "bug", "incident", "improvement", "new feature"}
SUBTASK_TYPES = {"sub-task", "subtask"}


@dataclass
class CategorizedIssues:
    epics: List[IssueSummary] = field(default_factory=list)
    stories: List[IssueSummary] = field(default_factory=list)
    tasks: List[IssueSummary] = field(default_factory=list)
    subtasks: List[IssueSummary] = field(default_factory=list)
    related_to_story: Dict[str, List[IssueSummary]] = field(default_factory=dict)

    def referenced_epic_keys(self) -> List[str]:
        """Epic keys referenced by stories, in first-seen order."""
        keys = {}
        for story in self.stories:
            if story.epic_key:
                keys.setdefault(story.epic_key, None)
        return list(keys)


def resolve_epic_link_field_id(names: Any) -> Optional[str]:
    """Find the custom field id whose display name is "Epic Link"."""
    if not isinstance(names, dict):
        return None
    for field_id, display_name in names.items():
        if isinstance(display_name, str) and display_name.strip().lower() == EPIC_LINK_FIELD_NAME:
            return field_id
    return None


def _name_of(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get("name") or "")
    return ""


def _key_of(value: Any) -> Optional[str]:
    if isinstance(value, dict) and value.get("key"):
        return str(value["key"])
    return None


def extract_epic_key(fields: Dict[str, Any], epic_link_field_id: Optional[str]) -> Optional[str]:
    # company-managed projects use the Epic Link custom field,
    # team-managed ones a structured "epic" reference
    if epic_link_field_id:
        value = fields.get(epic_link_field_id)
        if isinstance(value, str) and value:
            return value
        if isinstance(value, dict):
            key = _key_of(value)
            if key:
                return key
    return _key_of(fields.get("epic"))


def parse_issue(issue: Dict[str, Any], epic_link_field_id: Optional[str] = None) -> IssueSummary:
    fields = issue.get("fields") or {}
    return IssueSummary(
        id=str(issue.get("id") or ""),
        key=str(issue.get("key") or ""),
        type=_name_of(fields.get("issuetype")),
        summary=str(fields.get("summary") or ""),
        status=_name_of(fields.get("status")),
        description=adf_to_plain_text(fields.get("description")),
        epic_key=extract_epic_key(fields, epic_link_field_id),
        parent_key=_key_of(fields.get("parent")),
    )


def embedded_subtask_summary(subtask: Dict[str, Any], story_key: str) -> Optional[IssueSummary]:
    """Summary for a subtask embedded in its story's ``subtasks`` field."""
    key = subtask.get("key")
    if not key:
        return None
    fields = subtask.get("fields") or {}
    return IssueSummary(
        id=str(subtask.get("id") or key),
        key=str(key),
        type=_name_of(fields.get("issuetype")) or "Sub-task",
        summary=str(fields.get("summary") or ""),
        status=_name_of(fields.get("status")),
        parent_key=story_key,
    )


def _link(related: Dict[str, List[IssueSummary]], parent_key: str, child: IssueSummary, replace: bool) -> None:
    entries = related.setdefault(parent_key, [])
    for i, existing in enumerate(entries):
        if existing.key == child.key:
            if replace:
                entries[i] = child
            return
    entries.append(child)


def categorize_issues(issues: List[Dict[str, Any]], epic_link_field_id: Optional[str] = None) -> CategorizedIssues:
    """
    Partition raw issues by type.

    Every issue lands in exactly one bucket; unknown types go to tasks.
    Story records contribute their embedded subtasks to ``related_to_story``
    and subtask records link themselves under their parent key. A subtask
    reached both ways appears once, as its full record.
    """
    result = CategorizedIssues()

    for issue in issues:
        parsed = parse_issue(issue, epic_link_field_id)
        issue_type = parsed.type.lower()

        if issue_type in EPIC_TYPES:
            result.epics.append(parsed)
        elif issue_type in STORY_TYPES:
            result.stories.append(parsed)
            for raw_subtask in (issue.get("fields") or {}).get("subtasks") or []:
                if not isinstance(raw_subtask, dict):
                    continue
                summary = embedded_subtask_summary(raw_subtask, parsed.key)
                if summary is not None:
                    _link(result.related_to_story, parsed.key, summary, replace=False)
        elif issue_type in SUBTASK_TYPES:
            result.subtasks.append(parsed)
            if parsed.parent_key:
                _link(result.related_to_story, parsed.parent_key, parsed, replace=True)
        else:
            if issue_type not in TASK_TYPES:
                logger.debug(f"Unknown issue type '{parsed.type}' for {parsed.key}, treating as task")
            result.tasks.append(parsed)

    logger.debug(
        f"Categorized {len(issues)} issues: {len(result.epics)} epics, {len(result.stories)} stories, "
        f"{len(result.tasks)} tasks, {len(result.subtasks)} subtasks"
    )
    return result
