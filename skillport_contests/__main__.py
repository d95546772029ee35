"""
CLI entry point for the contest service.

Parses arguments, wires components over a JSON store directory and runs one
operation as the given user.
"""

import argparse
import json
import sys
from argparse import Namespace
from pathlib import Path
from typing import Any

from prettytable import PrettyTable

from .api import ApiResult, ContestAPI
from .exceptions import ContestError
from .interfaces import JudgePolicy
from .judges.random_stub_judge import RandomStubJudge
from .judges.scripted_judge import ScriptedJudge
from .logging_config import get_logger, setup_logging
from .models import Role, SubmissionStatus, UserContext
from .service import ContestService
from .storage.json_store import JSONContestStore

JUDGE_TYPES = ["random", "accept-all", "reject-all"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skillport_contests",
        description="SkillPort Contests - contest participation and scoring",
    )

    # Caller identity
    identity = parser.add_argument_group("caller identity")
    _ = identity.add_argument("--user", required=True, help="Acting user id")
    _ = identity.add_argument(
        "--role",
        choices=[role.value for role in Role],
        default=Role.STUDENT.value,
        help="Acting user's role (default: student)",
    )
    _ = identity.add_argument("--community", required=True, help="Acting user's community id")
    _ = identity.add_argument("--batch", help="Acting user's batch")
    _ = identity.add_argument("--name", default="", help="Display name")
    _ = identity.add_argument("--email", help="Contact email")

    # Components
    _ = parser.add_argument(
        "--store-dir",
        default="contest_data",
        help="Directory for contest documents and the event log (default: contest_data)",
    )
    _ = parser.add_argument(
        "--judge",
        choices=JUDGE_TYPES,
        default="random",
        help="Judge policy for submissions (default: random)",
    )
    _ = parser.add_argument("--seed", type=int, help="Seed for the random judge")
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Set logging level (default: WARNING)",
    )
    _ = parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="Create a contest from a JSON payload file")
    _ = create.add_argument("spec_file", help="Path to the contest JSON payload")

    for name, help_text in [
        ("publish", "Publish a draft contest"),
        ("open-registration", "Open registration for a published contest"),
        ("start", "Start a contest"),
        ("end", "End an active contest early"),
        ("join", "Join a contest"),
        ("leave", "Leave a contest before submitting"),
        ("leaderboard", "Show the ranked leaderboard"),
        ("show", "Show contest details"),
        ("stats", "Show contest statistics"),
    ]:
        command = commands.add_parser(name, help=help_text)
        _ = command.add_argument("contest_id")

    submit = commands.add_parser("submit", help="Submit a solution")
    _ = submit.add_argument("contest_id")
    _ = submit.add_argument("problem_id")
    _ = submit.add_argument("--language", required=True, help="Submission language")
    source = submit.add_mutually_exclusive_group(required=True)
    _ = source.add_argument("--code", help="Source code")
    _ = source.add_argument("--code-file", help="Path to the source file")

    return parser


def build_judge(args: Namespace) -> JudgePolicy:
    if args.judge == "random":
        return RandomStubJudge(seed=args.seed)
    if args.judge == "accept-all":
        return ScriptedJudge(fallback=SubmissionStatus.ACCEPTED)
    if args.judge == "reject-all":
        return ScriptedJudge(fallback=SubmissionStatus.WRONG_ANSWER)
    raise ValueError(f"Unknown judge type: {args.judge}")


def wire_api(args: Namespace) -> ContestAPI:
    """Wire store, judge and service behind the API facade."""
    logger = get_logger("wire_components")

    store_dir = Path(args.store_dir)
    logger.info(f"Using contest store at {store_dir}")
    store = JSONContestStore(store_dir)

    logger.info(f"Creating {args.judge} judge")
    service = ContestService(store, judge=build_judge(args))
    return ContestAPI(service)


def actor_from_args(args: Namespace) -> UserContext:
    return UserContext(
        user_id=args.user,
        role=Role(args.role),
        community_id=args.community,
        batch=args.batch,
        display_name=args.name,
        email=args.email,
    )


def dispatch(api: ContestAPI, args: Namespace, actor: UserContext) -> ApiResult:
    command: str = args.command
    if command == "create":
        with open(args.spec_file, encoding="utf-8") as f:
            payload = json.load(f)
        return api.create_contest(payload, actor)
    if command == "publish":
        return api.publish_contest(args.contest_id, actor)
    if command == "open-registration":
        return api.open_registration(args.contest_id, actor)
    if command == "start":
        return api.start_contest(args.contest_id, actor)
    if command == "end":
        return api.end_contest(args.contest_id, actor)
    if command == "join":
        return api.join_contest(args.contest_id, actor)
    if command == "leave":
        return api.leave_contest(args.contest_id, actor)
    if command == "submit":
        code = args.code
        if args.code_file is not None:
            code = Path(args.code_file).read_text(encoding="utf-8")
        return api.submit_solution(args.contest_id, actor, args.problem_id, code, args.language)
    if command == "leaderboard":
        return api.get_leaderboard(args.contest_id, actor)
    if command == "show":
        return api.get_contest(args.contest_id, actor)
    if command == "stats":
        return api.contest_stats(args.contest_id, actor)
    raise ValueError(f"Unknown command: {command}")


def render_leaderboard(rows: list[dict[str, Any]]) -> str:
    table = PrettyTable()
    table.field_names = ["Rank", "User", "Name", "Score", "Submissions", "Solved", "Email"]
    for column in ("Rank", "Score", "Submissions", "Solved"):
        table.align[column] = "r"
    for row in rows:
        table.add_row([
            row["rank"],
            row["user_id"],
            row["display_name"],
            row["score"],
            row["submission_count"],
            row["problems_solved"],
            row.get("email", ""),
        ])
    return table.get_string()


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point; returns the process exit status."""
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, debug=args.debug, log_file=None)
    logger = get_logger("main")

    try:
        actor = actor_from_args(args)
        api = wire_api(args)
        result = dispatch(api, args, actor)
    except ContestError as e:
        result = ApiResult.failure(e.kind, e.message)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Cannot read input: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        print("\nInterrupted by user", file=sys.stderr)
        return 1

    if result.ok and args.command == "leaderboard":
        print(render_leaderboard(result.data))
    else:
        print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
