"""
Operations exposed to an external agent/orchestration layer.

``TOOLS`` is a static table: operation name -> ``Tool``. An orchestrator
lists it with ``tool_descriptions()`` and invokes entries with
``call_tool()``; results are plain JSON-ready data.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .service import JiraService


@dataclass(frozen=True)
class ToolParameter:
    name: str
    description: str
    type: str = "string"
    required: bool = True


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    parameters: Tuple[ToolParameter, ...]
    handler: Callable[[JiraService, Dict[str, Any]], Any]


def _sprint_tokens(arguments: Dict[str, Any]) -> Optional[List[str]]:
    tokens = arguments.get("sprintIds")
    if tokens is None:
        return None
    if isinstance(tokens, str):
        return [tokens]
    return [str(t) for t in tokens]


PROJECT_NAME = ToolParameter("projectName", "Project name or key; resolved against the Jira project search")
SPRINT_IDS = ToolParameter(
    "sprintIds",
    "Optional sprint ids (numeric) or names/fragments, e.g. ['FLUT1']. "
    "Omit to query the whole project.",
    type="array",
    required=False,
)

TOOLS: Dict[str, Tool] = {
    tool.name: tool
    for tool in (
        Tool(
            name="getProjectInfo",
            description="Get the project information (id, key, name) for the given project name",
            parameters=(PROJECT_NAME,),
            handler=lambda service, args: service.get_project_info(args["projectName"]).to_dict(),
        ),
        Tool(
            name="getSprintIssues",
            description=(
                "Get project issues grouped into epics, stories, tasks and subtasks. Sprint identifiers are "
                "matched against active and future sprints, then against all sprints; if none match the whole "
                "project is queried."
            ),
            parameters=(PROJECT_NAME, SPRINT_IDS),
            handler=lambda service, args: service.get_sprint_issues(
                args["projectName"], _sprint_tokens(args)
            ).to_dict(),
        ),
        Tool(
            name="getActiveAndFutureSprints",
            description="List active and future sprints for a project. Useful to validate sprint identifiers.",
            parameters=(PROJECT_NAME,),
            handler=lambda service, args: [
                s.to_dict() for s in service.get_active_and_future_sprints(args["projectName"])
            ],
        ),
        Tool(
            name="getSprintIssuesDebug",
            description=(
                "Same as getSprintIssues, but logs the resolved project key, boards, sprints, tokens "
                "and final JQL along the way."
            ),
            parameters=(PROJECT_NAME, SPRINT_IDS),
            handler=lambda service, args: service.get_sprint_issues_debug(
                args["projectName"], _sprint_tokens(args)
            ).to_dict(),
        ),
    )
}


def tool_descriptions() -> List[Dict[str, Any]]:
    return [
        {
            "name": tool.name,
            "description": tool.description,
            "parameters": [
                {"name": p.name, "description": p.description, "type": p.type, "required": p.required}
                for p in tool.parameters
            ],
        }
        for tool in TOOLS.values()
    ]


def call_tool(service: JiraService, name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
    """Invoke a tool by name after checking its required arguments."""
    try:
        tool = TOOLS[name]
    except KeyError:
        raise ValueError(f"Unknown tool '{name}'. Available: {', '.join(TOOLS)}")

    arguments = arguments or {}
    missing = [p.name for p in tool.parameters if p.required and arguments.get(p.name) in (None, "")]
    if missing:
        raise ValueError(f"Tool '{name}' is missing required arguments: {', '.join(missing)}")
    return tool.handler(service, arguments)
