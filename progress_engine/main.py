"""Command-line entry point for the progress engine"""
import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from progress_engine.config import validate_config, LOG_LEVEL
from progress_engine.db.connection import db
from progress_engine.db.postgres_store import PostgresProgressStore
from progress_engine.exceptions import ProgressEngineError, RecordNotFoundError
from progress_engine.gamification.achievement_system import (
    AchievementEvaluator,
    format_achievement_unlock_message,
)

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="progress-engine",
        description="Streak and achievement tracking for task completions"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-schema", help="Create progress tables")

    init_user = sub.add_parser("init-user", help="Initialize a user's progress")
    init_user.add_argument("user_id")

    complete = sub.add_parser("complete", help="Record a completed task")
    complete.add_argument("user_id")
    complete.add_argument("--verified", action="store_true", help="Completion is verified")
    complete.add_argument("--perfect-day", action="store_true", help="Completion finished the day's plan")

    show = sub.add_parser("show", help="Show a user's progress and achievements")
    show.add_argument("user_id")

    return parser


async def run(args: argparse.Namespace) -> int:
    """Execute a parsed command against the PostgreSQL store"""
    # Catalog and timezone come from config
    store = PostgresProgressStore(db)
    evaluator = AchievementEvaluator(store)

    await db.init_pool()
    try:
        if args.command == "init-schema":
            await store.ensure_schema()
            print("Schema ready")

        elif args.command == "init-user":
            await evaluator.initialize_user_progress(args.user_id)
            print(f"User {args.user_id} initialized")

        elif args.command == "complete":
            unlocked = await evaluator.process_completion(
                args.user_id,
                is_verified_completion=args.verified,
                is_perfect_day=args.perfect_day
            )
            progress = await evaluator.get_user_progress(args.user_id)
            print(
                f"Streak: {progress.current_streak} (best {progress.longest_streak}), "
                f"tasks: {progress.total_tasks_completed}"
            )
            for achievement in unlocked:
                print(format_achievement_unlock_message(achievement))

        elif args.command == "show":
            progress = await evaluator.get_user_progress(args.user_id)
            if progress is None:
                raise RecordNotFoundError(
                    f"No progress recorded for {args.user_id}",
                    record_type="User progress",
                    record_id=args.user_id
                )
            print(progress.model_dump_json(indent=2))
            summary = await evaluator.get_user_achievements(args.user_id)
            print(f"Achievements: {summary.total_unlocked}/{summary.total_achievements}")
            for status in summary.unlocked + summary.locked:
                mark = "x" if status.is_unlocked else " "
                print(
                    f"[{mark}] {status.icon} {status.name}: "
                    f"{status.current_progress}/{status.criteria_value} ({status.percentage}%)"
                )
    finally:
        await db.close_pool()

    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main application entry point"""
    args = build_parser().parse_args(argv)
    try:
        validate_config()
        return asyncio.run(run(args))
    except ProgressEngineError as e:
        print(e.user_message, file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
