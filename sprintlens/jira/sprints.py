"""
Sprint directory: boards of a project and the sprints on each board, read
from the Jira Agile API.
"""

import logging
from typing import Any, Dict, Iterator, List, Optional

from .models import SprintInfo
from .transport import CancellationToken, JiraTransport, raise_for_jira_status

logger = logging.getLogger(__name__)

BOARDS_PATH = "rest/agile/1.0/board"
BOARD_SPRINTS_PATH = "rest/agile/1.0/board/{board_id}/sprint"
DIRECTORY_PAGE_SIZE = 50
ALL_SPRINT_STATES = "active,closed,future"


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    return None


def to_sprint_info(record: Dict[str, Any]) -> Optional[SprintInfo]:
    """Convert a raw sprint record; records without a numeric id yield None."""
    sprint_id = _as_int(record.get("id"))
    if sprint_id is None:
        return None
    return SprintInfo(
        id=sprint_id,
        name=str(record.get("name") or ""),
        state=str(record.get("state") or ""),
        start_date=record.get("startDate"),
        end_date=record.get("endDate"),
        goal=record.get("goal"),
        board_id=_as_int(record.get("originBoardId")),
    )


def dedupe_sprints(sprints: List[SprintInfo]) -> List[SprintInfo]:
    seen = {}
    for sprint in sprints:
        seen.setdefault(sprint.id, sprint)
    return list(seen.values())


class SprintDirectory:
    def __init__(self, transport: JiraTransport, page_size: int = DIRECTORY_PAGE_SIZE):
        self.transport = transport
        self.page_size = page_size

    def _paginate_values(
        self,
        path: str,
        params: Dict[str, Any],
        action: str,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Iterator[Dict[str, Any]]:
        """
        Yield ``values`` entries across pages.

        Stops on an empty page, a page flagged ``isLast`` or a failed page.
        Authentication failures are raised; other failures keep what was
        already read.
        """
        start_at = 0
        while True:
            page_params = dict(params, startAt=start_at, maxResults=self.page_size)
            result = self.transport.get(path, params=page_params, cancel_token=cancel_token)
            if result.status_code in (401, 403):
                raise_for_jira_status(result, action)
            if not result.ok:
                logger.warning(f"Jira {action} stopped at startAt={start_at}: HTTP {result.status_code}")
                return

            data = result.json()
            if not isinstance(data, dict):
                logger.warning(f"Jira {action} returned a non-object page at startAt={start_at}")
                return
            values = data.get("values") or []
            for value in values:
                if isinstance(value, dict):
                    yield value

            if not values or data.get("isLast") is True:
                return
            start_at += len(values)

    def boards_for_project(self, project_key: str, cancel_token: Optional[CancellationToken] = None) -> List[int]:
        boards = []
        for board in self._paginate_values(
            BOARDS_PATH, {"projectKeyOrId": project_key}, "board listing", cancel_token
        ):
            board_id = _as_int(board.get("id"))
            if board_id is not None:
                boards.append(board_id)
        logger.debug(f"Boards for project {project_key}: {boards}")
        return boards

    def sprints_for_board(self, board_id: int, cancel_token: Optional[CancellationToken] = None) -> List[Dict[str, Any]]:
        sprints = list(
            self._paginate_values(
                BOARD_SPRINTS_PATH.format(board_id=board_id),
                {"state": ALL_SPRINT_STATES},
                "sprint listing",
                cancel_token,
            )
        )
        logger.debug(f"Board {board_id} has {len(sprints)} sprints")
        return sprints

    def all_sprints(self, project_key: str, cancel_token: Optional[CancellationToken] = None) -> List[Dict[str, Any]]:
        """Every sprint record on every board of the project, deduplicated by id."""
        records: Dict[Any, Dict[str, Any]] = {}
        for board_id in self.boards_for_project(project_key, cancel_token):
            for record in self.sprints_for_board(board_id, cancel_token):
                records.setdefault(record.get("id"), record)
        return list(records.values())

    def active_and_future_sprints(
        self, project_key: str, cancel_token: Optional[CancellationToken] = None
    ) -> List[SprintInfo]:
        sprints = []
        for board_id in self.boards_for_project(project_key, cancel_token):
            for record in self.sprints_for_board(board_id, cancel_token):
                info = to_sprint_info(record)
                if info is not None and info.is_live:
                    sprints.append(info)

        sprints = dedupe_sprints(sprints)
        logger.info(f"Found {len(sprints)} active/future sprints for project {project_key}")
        return sprints
