"""
Unit tests for issue categorization.
"""

import pytest

from sprintlens.jira.categorize import (
    categorize_issues,
    extract_epic_key,
    parse_issue,
    resolve_epic_link_field_id,
)


def raw_issue(key, issue_type, **fields):
    base = {
        "summary": f"Summary of {key}",
        "issuetype": {"name": issue_type},
        "status": {"name": "To Do"},
    }
    base.update(fields)
    return {"id": f"id-{key}", "key": key, "fields": base}


def embedded(key, summary="embedded", issue_type="Sub-task"):
    return {
        "id": f"id-{key}",
        "key": key,
        "fields": {"summary": summary, "status": {"name": "In Progress"}, "issuetype": {"name": issue_type}},
    }


@pytest.fixture
def mixed_issues():
    return [
        raw_issue("FLUT-1", "Epic"),
        raw_issue("FLUT-2", "Story", subtasks=[embedded("FLUT-5")]),
        raw_issue("FLUT-3", "User Story"),
        raw_issue("FLUT-4", "Bug"),
        raw_issue("FLUT-5", "Sub-task", parent={"key": "FLUT-2"}),
        raw_issue("FLUT-6", "Spike"),
        raw_issue("FLUT-7", "subtask", parent={"key": "FLUT-4"}),
        raw_issue("FLUT-8", "New Feature"),
        raw_issue("FLUT-9", "Incident"),
        raw_issue("FLUT-10", "Improvement"),
        raw_issue("FLUT-11", "Task"),
    ]


# ============================================================================
# Partition
# ============================================================================

def test_every_issue_lands_in_exactly_one_bucket(mixed_issues):
    result = categorize_issues(mixed_issues)

    buckets = [result.epics, result.stories, result.tasks, result.subtasks]
    keys = [issue.key for bucket in buckets for issue in bucket]
    assert sorted(keys) == sorted(i["key"] for i in mixed_issues)
    assert len(keys) == len(set(keys))


def test_dispatch_by_type(mixed_issues):
    result = categorize_issues(mixed_issues)

    assert [i.key for i in result.epics] == ["FLUT-1"]
    assert [i.key for i in result.stories] == ["FLUT-2", "FLUT-3"]
    assert [i.key for i in result.subtasks] == ["FLUT-5", "FLUT-7"]
    assert [i.key for i in result.tasks] == ["FLUT-4", "FLUT-6", "FLUT-8", "FLUT-9", "FLUT-10", "FLUT-11"]


def test_unknown_type_defaults_to_tasks():
    result = categorize_issues([raw_issue("X-1", "Spike"), raw_issue("X-2", "")])

    assert [i.key for i in result.tasks] == ["X-1", "X-2"]


def test_empty_input():
    result = categorize_issues([])

    assert result.epics == result.stories == result.tasks == result.subtasks == []
    assert result.related_to_story == {}


# ============================================================================
# Relationships
# ============================================================================

def test_subtask_linked_both_ways_appears_once(mixed_issues):
    result = categorize_issues(mixed_issues)

    related = result.related_to_story["FLUT-2"]
    assert [i.key for i in related] == ["FLUT-5"]
    # the full record replaces the embedded stub
    assert related[0].summary == "Summary of FLUT-5"


def test_back_reference_before_story_is_not_duplicated():
    issues = [
        raw_issue("A-2", "Sub-task", parent={"key": "A-1"}),
        raw_issue("A-1", "Story", subtasks=[embedded("A-2"), embedded("A-3")]),
    ]

    result = categorize_issues(issues)

    related = result.related_to_story["A-1"]
    assert [i.key for i in related] == ["A-2", "A-3"]
    assert related[0].summary == "Summary of A-2"
    assert related[1].parent_key == "A-1"


def test_subtask_parent_need_not_be_a_story(mixed_issues):
    result = categorize_issues(mixed_issues)

    assert [i.key for i in result.related_to_story["FLUT-4"]] == ["FLUT-7"]


def test_embedded_subtask_defaults():
    issues = [raw_issue("B-1", "Story", subtasks=[{"key": "B-2"}, {"id": "no-key"}])]

    related = categorize_issues(issues).related_to_story["B-1"]

    assert len(related) == 1
    assert related[0].id == "B-2"
    assert related[0].type == "Sub-task"
    assert related[0].epic_key is None


def test_duplicate_embedded_subtasks_are_skipped():
    issues = [raw_issue("C-1", "Story", subtasks=[embedded("C-2"), embedded("C-2", summary="again")])]

    related = categorize_issues(issues).related_to_story["C-1"]

    assert [(i.key, i.summary) for i in related] == [("C-2", "embedded")]


def test_referenced_epic_keys_come_from_stories():
    issues = [
        raw_issue("D-1", "Story", epic={"key": "D-100"}),
        raw_issue("D-2", "Story", epic={"key": "D-100"}),
        raw_issue("D-3", "Task", epic={"key": "D-200"}),
        raw_issue("D-4", "Story", epic={"key": "D-300"}),
    ]

    assert categorize_issues(issues).referenced_epic_keys() == ["D-100", "D-300"]


# ============================================================================
# Field extraction
# ============================================================================

def test_resolve_epic_link_field_id():
    names = {"summary": "Summary", "customfield_10014": "Epic Link", "customfield_10011": "Epic Name"}

    assert resolve_epic_link_field_id(names) == "customfield_10014"
    assert resolve_epic_link_field_id({"customfield_1": "EPIC LINK"}) == "customfield_1"
    assert resolve_epic_link_field_id({"summary": "Summary"}) is None
    assert resolve_epic_link_field_id(None) is None


def test_custom_field_wins_over_structured_reference():
    fields = {"customfield_10014": "OLD-1", "epic": {"key": "NEW-1"}}

    assert extract_epic_key(fields, "customfield_10014") == "OLD-1"
    assert extract_epic_key(fields, None) == "NEW-1"


def test_structured_reference_used_when_custom_field_empty():
    fields = {"customfield_10014": None, "epic": {"key": "NEW-1"}}

    assert extract_epic_key(fields, "customfield_10014") == "NEW-1"
    assert extract_epic_key({}, "customfield_10014") is None


def test_parse_issue_extracts_everything():
    issue = raw_issue(
        "E-1",
        "Story",
        parent={"key": "E-0"},
        customfield_10014="E-100",
        description={"type": "doc", "content": [{"type": "paragraph", "content": [{"type": "text", "text": "Details"}]}]},
    )

    parsed = parse_issue(issue, "customfield_10014")

    assert parsed.id == "id-E-1"
    assert parsed.key == "E-1"
    assert parsed.type == "Story"
    assert parsed.summary == "Summary of E-1"
    assert parsed.status == "To Do"
    assert parsed.description == "Details"
    assert parsed.epic_key == "E-100"
    assert parsed.parent_key == "E-0"


def test_parse_issue_tolerates_missing_fields():
    parsed = parse_issue({"key": "F-1"})

    assert parsed.id == ""
    assert parsed.type == ""
    assert parsed.status == ""
    assert parsed.description == ""
    assert parsed.parent_key is None
