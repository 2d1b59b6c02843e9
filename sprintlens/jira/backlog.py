#!/usr/bin/env python3
"""
Jira Backlog Snapshot

Resolves a project (and optional sprint identifiers) and prints the
categorized issue snapshot as JSON or as a table.
Configuration driven by YAML file containing Jira credentials et al.

Usage:
    python -m sprintlens.jira.backlog Flutter --config config.yaml --sprint FLUT1
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Handle both direct script execution and module import
try:
    from .config import (
        credentials_from_config,
        credentials_from_env,
        load_config,
        settings_from_config,
    )
    from .errors import JiraError
    from .report import category_counts, sprint_issues_to_dataframe, sprints_to_dataframe
    from .service import JiraService
    from .transport import CancellationToken
except ImportError:
    # Add parent directory to path for direct script execution
    sys.path.insert(0, str(Path(__file__).parent.parent.parent))
    from sprintlens.jira.config import (
        credentials_from_config,
        credentials_from_env,
        load_config,
        settings_from_config,
    )
    from sprintlens.jira.errors import JiraError
    from sprintlens.jira.report import category_counts, sprint_issues_to_dataframe, sprints_to_dataframe
    from sprintlens.jira.service import JiraService
    from sprintlens.jira.transport import CancellationToken

MODES = ("issues", "sprints", "project", "debug")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def setup_logging(log_level: str = "INFO") -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(levelname)-10s %(asctime)s %(filename)s %(lineno)d %(message)s",
        stream=sys.stderr,
    )


def build_service(config_path: Optional[str]) -> JiraService:
    if config_path:
        config = load_config(config_path)
        return JiraService(credentials_from_config(config), settings_from_config(config))
    return JiraService(credentials_from_env())


def run(args: argparse.Namespace) -> str:
    service = build_service(args.config)
    cancel_token = CancellationToken(timeout=args.deadline) if args.deadline else None
    try:
        if args.mode == "project":
            info = service.get_project_info(args.project, cancel_token=cancel_token)
            return json.dumps(info.to_dict(), indent=2)

        if args.mode == "sprints":
            sprints = service.get_active_and_future_sprints(args.project, cancel_token=cancel_token)
            if args.format == "table":
                return sprints_to_dataframe(sprints).to_string(index=False)
            return json.dumps([s.to_dict() for s in sprints], indent=2)

        if args.mode == "debug":
            result = service.get_sprint_issues_debug(args.project, args.sprint, cancel_token=cancel_token)
        else:
            result = service.get_sprint_issues(args.project, args.sprint, cancel_token=cancel_token)

        if args.format == "table":
            issues = sprint_issues_to_dataframe(result).to_string(index=False)
            counts = category_counts(result).to_string(index=False)
            return f"{issues}\n\n{counts}"
        return result.to_json()
    finally:
        service.close()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print a categorized Jira backlog snapshot for a project")
    parser.add_argument(
        "project",
        type=str,
        help="project name or key",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="path to config file (defaults to the JIRA_CREDENTIALS_JSON environment variable)",
    )
    parser.add_argument(
        "--sprint",
        action="append",
        default=None,
        help="sprint id or name fragment; repeat for several sprints",
    )
    parser.add_argument("--mode", choices=MODES, default="issues")
    parser.add_argument("--format", choices=("json", "table"), default="json")
    parser.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="abort the retrieval after this many seconds",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default="INFO",
    )
    return parser.parse_args(argv)


def cli(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    try:
        output = run(args)
    except (JiraError, ValueError) as e:
        logging.error(str(e))
        return 1
    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(cli())
