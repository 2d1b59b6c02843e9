"""
sprintlens: backlog snapshots from Jira projects and sprints.
"""

__version__ = "0.1.0"
