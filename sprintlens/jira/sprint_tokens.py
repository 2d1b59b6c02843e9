"""
Sprint token resolution.

Users refer to sprints loosely: by numeric id ("1234"), by full name
("FLUT Sprint 3") or by a fragment ("sprint-3"). Tokens are matched against
the live (active/future) sprints first; when nothing matches, every sprint
on every board of the project is searched.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .models import SprintInfo
from .sprints import SprintDirectory, dedupe_sprints, to_sprint_info
from .transport import CancellationToken

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def clean_sprint_tokens(raw_tokens: Optional[Iterable[str]]) -> List[str]:
    """Trim whitespace and surrounding quotes, dropping empty tokens."""
    tokens = []
    for raw in raw_tokens or []:
        token = str(raw).strip().strip("\"'").strip()
        if token:
            tokens.append(token)
    return tokens


def normalize_sprint_name(name: str) -> str:
    normalized = name.lower().replace("\u00a0", " ").replace("_", " ").replace("-", " ")
    return _WHITESPACE.sub(" ", normalized).strip()


def split_sprint_tokens(tokens: Iterable[str]) -> Tuple[Set[int], List[str]]:
    """Separate all-decimal tokens (candidate ids) from textual ones."""
    numeric: Set[int] = set()
    textual: List[str] = []
    for token in tokens:
        if token.isdecimal():
            numeric.add(int(token))
        else:
            textual.append(token)
    return numeric, textual


def match_sprint_tokens(tokens: List[str], available: List[SprintInfo]) -> List[SprintInfo]:
    """
    Match tokens against a sprint list.

    Numeric tokens match ids. Textual tokens match the first sprint whose
    normalized name equals the normalized token; containment matches are
    added only when no already matched sprint contains the token.
    """
    numeric, textual = split_sprint_tokens(tokens)
    matched: Dict[int, SprintInfo] = {}

    for sprint in available:
        if sprint.id in numeric:
            matched.setdefault(sprint.id, sprint)

    for token in textual:
        wanted = normalize_sprint_name(token)
        if not wanted:
            continue

        exact = next((s for s in available if normalize_sprint_name(s.name) == wanted), None)
        if exact is not None:
            matched.setdefault(exact.id, exact)

        if not any(wanted in normalize_sprint_name(s.name) for s in matched.values()):
            for sprint in available:
                if wanted in normalize_sprint_name(sprint.name):
                    matched.setdefault(sprint.id, sprint)

    return list(matched.values())


class SprintTokenResolver:
    def __init__(self, directory: SprintDirectory):
        self.directory = directory

    def resolve(
        self,
        project_key: str,
        tokens: List[str],
        available: List[SprintInfo],
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[SprintInfo]:
        """
        Resolve cleaned tokens to sprints.

        No tokens means every live sprint. Tokens that match nothing among
        the live sprints trigger a broad search across all boards and states;
        if that fails too the result is empty, which callers treat as
        "whole project".
        """
        if not tokens:
            return list(available)

        matched = match_sprint_tokens(tokens, available)
        if matched:
            logger.info(f"Sprint tokens {tokens} matched {[s.id for s in matched]} among active/future sprints")
            return matched

        logger.info(f"Sprint tokens {tokens} matched no active/future sprint, searching all sprints")
        return self.broad_resolve(project_key, tokens, cancel_token)

    def resolve_identifiers(
        self,
        project_key: str,
        tokens: List[str],
        cancel_token: Optional[CancellationToken] = None,
        records: Optional[List[dict]] = None,
    ) -> Tuple[List[int], List[str]]:
        """
        Resolve tokens to sprint ids using every sprint of every board.

        Returns:
            (resolved ids in discovery order, tokens that matched nothing)
        """
        numeric, textual = split_sprint_tokens(tokens)
        resolved: Dict[int, None] = {sprint_id: None for sprint_id in sorted(numeric)}
        if not textual:
            return list(resolved), []

        if records is None:
            records = self.directory.all_sprints(project_key, cancel_token)
        index = {}
        for record in records:
            info = to_sprint_info(record)
            if info is not None and info.name:
                index[info.id] = info.name

        unresolved = []
        for token in textual:
            lower = token.lower()
            matches = [sid for sid, name in index.items() if name.lower() == lower]
            if not matches:
                matches = [
                    sid for sid, name in index.items()
                    if lower in name.lower() or name.lower().startswith(lower)
                ]
            if matches:
                resolved.update((sid, None) for sid in matches)
            else:
                unresolved.append(token)

        return list(resolved), unresolved

    def broad_resolve(
        self,
        project_key: str,
        tokens: List[str],
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[SprintInfo]:
        records = self.directory.all_sprints(project_key, cancel_token)
        sprint_ids, unresolved = self.resolve_identifiers(project_key, tokens, cancel_token, records=records)
        if unresolved:
            logger.warning(f"Could not resolve sprint tokens {unresolved} for project {project_key}")
        if not sprint_ids:
            return []

        wanted = set(sprint_ids)
        found = [info for info in map(to_sprint_info, records) if info is not None and info.id in wanted]
        found = dedupe_sprints(found)
        logger.info(f"Broad sprint search resolved {[s.id for s in found]} for project {project_key}")
        return found
