"""Tabular views of a SprintIssues snapshot."""

from typing import Dict, List

import pandas as pd

from .models import IssueSummary, SprintInfo, SprintIssues

ISSUE_COLUMNS = [
    "category",
    "issue_key",
    "issue_type",
    "summary",
    "status",
    "epic_key",
    "parent_key",
    "related_story",
]
SPRINT_COLUMNS = ["sprint_id", "name", "state", "start_date", "end_date", "goal", "board_id"]


def flatten_issue(issue: IssueSummary, category: str, related_story: str = "n/a") -> Dict[str, str]:
    return {
        "category": category,
        "issue_key": issue.key,
        "issue_type": issue.type,
        "summary": issue.summary,
        "status": issue.status,
        "epic_key": issue.epic_key or "n/a",
        "parent_key": issue.parent_key or "n/a",
        "related_story": related_story,
    }


def flatten_sprint_issues(result: SprintIssues) -> List[Dict[str, str]]:
    story_of = {}
    for story_key, related in result.related_to_story.items():
        for issue in related:
            story_of.setdefault(issue.key, story_key)

    rows = []
    for category, issues in (
        ("epic", result.epics),
        ("story", result.stories),
        ("task", result.tasks),
        ("subtask", result.subtasks),
    ):
        for issue in issues:
            rows.append(flatten_issue(issue, category, story_of.get(issue.key, "n/a")))
    return rows


def sprint_issues_to_dataframe(result: SprintIssues) -> pd.DataFrame:
    return pd.DataFrame(flatten_sprint_issues(result), columns=ISSUE_COLUMNS)


def sprints_to_dataframe(sprints: List[SprintInfo]) -> pd.DataFrame:
    rows = [
        {
            "sprint_id": s.id,
            "name": s.name,
            "state": s.state,
            "start_date": s.start_date,
            "end_date": s.end_date,
            "goal": s.goal,
            "board_id": s.board_id,
        }
        for s in sprints
    ]
    return pd.DataFrame(rows, columns=SPRINT_COLUMNS)


def category_counts(result: SprintIssues) -> pd.DataFrame:
    """Issue counts per category and status."""
    df = sprint_issues_to_dataframe(result)
    if df.empty:
        return pd.DataFrame(columns=["category", "status", "count"])
    return df.groupby(["category", "status"]).size().reset_index(name="count")
