"""
Entities produced by the retrieval engine.

All of them are built fresh for every retrieval call. ``to_dict`` emits the
camelCase field names downstream consumers (prompt builders, document
generators) rely on.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ProjectInfo:
    id: str
    key: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "key": self.key, "name": self.name}


@dataclass(frozen=True)
class SprintInfo:
    id: int
    name: str
    state: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    goal: Optional[str] = None
    board_id: Optional[int] = None

    @property
    def is_live(self) -> bool:
        """True for sprints that are running or planned."""
        return self.state.lower() in ("active", "future")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "state": self.state,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "goal": self.goal,
            "boardId": self.board_id,
        }


@dataclass(frozen=True)
class IssueSummary:
    id: str
    key: str
    type: str
    summary: str
    status: str
    description: str = ""
    epic_key: Optional[str] = None
    parent_key: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "key": self.key,
            "type": self.type,
            "summary": self.summary,
            "status": self.status,
            "description": self.description,
            "epicKey": self.epic_key,
            "parentKey": self.parent_key,
        }


@dataclass
class SprintIssues:
    """Composite snapshot of a project's backlog for a set of sprints.

    ``sprint_ids[i]`` is always ``str(sprints[i].id)``.
    """

    project_name: str
    sprint_ids: List[str]
    epics: List[IssueSummary] = field(default_factory=list)
    stories: List[IssueSummary] = field(default_factory=list)
    tasks: List[IssueSummary] = field(default_factory=list)
    subtasks: List[IssueSummary] = field(default_factory=list)
    related_to_story: Dict[str, List[IssueSummary]] = field(default_factory=dict)
    sprints: List[SprintInfo] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {
            "epics": len(self.epics),
            "stories": len(self.stories),
            "tasks": len(self.tasks),
            "subtasks": len(self.subtasks),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projectName": self.project_name,
            "sprintIds": list(self.sprint_ids),
            "epics": [i.to_dict() for i in self.epics],
            "stories": [i.to_dict() for i in self.stories],
            "tasks": [i.to_dict() for i in self.tasks],
            "subtasks": [i.to_dict() for i in self.subtasks],
            "relatedToStory": {
                story_key: [i.to_dict() for i in related]
                for story_key, related in self.related_to_story.items()
            },
            "sprints": [s.to_dict() for s in self.sprints],
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
