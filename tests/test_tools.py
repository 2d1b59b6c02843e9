"""
Unit tests for the tool table exposed to orchestrators.
"""

from unittest.mock import Mock

import pytest

from sprintlens.jira.models import ProjectInfo, SprintInfo, SprintIssues
from sprintlens.jira.service import JiraService
from sprintlens.jira.tools import TOOLS, call_tool, tool_descriptions


@pytest.fixture
def service():
    mock_service = Mock(spec=JiraService)
    mock_service.get_project_info.return_value = ProjectInfo(id="10000", key="FLUT", name="Flutter")
    mock_service.get_active_and_future_sprints.return_value = [SprintInfo(id=11, name="FLUT Sprint 1", state="active")]
    mock_service.get_sprint_issues.return_value = SprintIssues(project_name="Flutter", sprint_ids=[])
    mock_service.get_sprint_issues_debug.return_value = SprintIssues(project_name="Flutter", sprint_ids=[])
    return mock_service


def test_table_lists_all_operations():
    assert set(TOOLS) == {"getProjectInfo", "getSprintIssues", "getActiveAndFutureSprints", "getSprintIssuesDebug"}


def test_tool_descriptions_are_plain_data():
    descriptions = {d["name"]: d for d in tool_descriptions()}

    params = {p["name"]: p for p in descriptions["getSprintIssues"]["parameters"]}
    assert params["projectName"]["required"] is True
    assert params["sprintIds"]["required"] is False
    assert params["sprintIds"]["type"] == "array"


def test_get_project_info(service):
    result = call_tool(service, "getProjectInfo", {"projectName": "Flutter"})

    assert result == {"id": "10000", "key": "FLUT", "name": "Flutter"}
    service.get_project_info.assert_called_once_with("Flutter")


def test_get_active_and_future_sprints(service):
    result = call_tool(service, "getActiveAndFutureSprints", {"projectName": "Flutter"})

    assert result[0]["id"] == 11
    assert result[0]["boardId"] is None


def test_get_sprint_issues_without_sprints(service):
    result = call_tool(service, "getSprintIssues", {"projectName": "Flutter"})

    service.get_sprint_issues.assert_called_once_with("Flutter", None)
    assert result["projectName"] == "Flutter"
    assert result["sprintIds"] == []


@pytest.mark.parametrize(
    "given, expected",
    [
        ("FLUT1", ["FLUT1"]),
        (["FLUT1", 12], ["FLUT1", "12"]),
    ],
)
def test_sprint_ids_argument_forms(service, given, expected):
    call_tool(service, "getSprintIssuesDebug", {"projectName": "Flutter", "sprintIds": given})

    service.get_sprint_issues_debug.assert_called_once_with("Flutter", expected)


def test_unknown_tool(service):
    with pytest.raises(ValueError, match="Unknown tool"):
        call_tool(service, "deleteEverything", {})


@pytest.mark.parametrize("arguments", [None, {}, {"projectName": ""}])
def test_missing_required_argument(service, arguments):
    with pytest.raises(ValueError, match="projectName"):
        call_tool(service, "getSprintIssues", arguments)
    service.get_sprint_issues.assert_not_called()
