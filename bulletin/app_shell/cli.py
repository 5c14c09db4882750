import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from bulletin.adapters.sqlite.migrator import SQLiteMigrator
from bulletin.app_shell.context import ServiceContext
from bulletin.app_shell.settings import Settings, get_settings
from bulletin.components.composition import ComposeInput, run_compose
from bulletin.components.delivery import (
    CancelRequest,
    DeliveryResult,
    SendDueRequest,
    SendFilters,
    SendRequest,
    run_cancel,
    run_send,
    run_send_due,
)
from bulletin.components.slots import RecommendCriteria, RecommendInput, run_recommend
from bulletin.domain.display import status_label
from bulletin.rules.loader import load_rules

logger = logging.getLogger("bulletin.cli")


def get_context(settings: Settings) -> ServiceContext:
    if not settings.rules_path.exists():
        logger.error("Rules file %s not found.", settings.rules_path)
        sys.exit(1)

    rules = load_rules(settings.rules_path)
    return ServiceContext.create(settings.db_path, rules)


def parse_when(value: str) -> datetime:
    """ISO-8601 timestamp; an explicit UTC offset is required."""
    when = datetime.fromisoformat(value)
    if when.tzinfo is None:
        raise argparse.ArgumentTypeError(f"{value!r} has no UTC offset")
    return when


def print_result(result: DeliveryResult) -> None:
    print(json.dumps(result.to_dict(), indent=2, default=str))


def handle_migrate(settings: Settings) -> None:
    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(settings.db_path, settings.migrations_dir).run_migrations()
    print(f"Applied {len(applied)} migration(s).")


def handle_recommend(ctx: ServiceContext, args: argparse.Namespace) -> None:
    criteria = RecommendCriteria(
        max_items=args.max_items,
        require_image=args.require_image,
        balance_topical_lines=not args.no_balance,
    )
    out = run_recommend(
        RecommendInput(candidates=tuple(ctx.content_repo.find_available()), criteria=criteria),
        rules=ctx.rules,
    )
    for item in out.items:
        print(f"{item.id}\t{item.display_affinity}\t{item.topical_line or '-'}\t{item.title}")


def handle_compose(ctx: ServiceContext, args: argparse.Namespace) -> int:
    out = run_compose(
        ComposeInput(
            header_text=args.header,
            news_ids=tuple(args.ids),
            number=args.number,
            save=not args.preview,
        ),
        ctx.newsletter_repo,
        ctx.content_repo,
        ctx.renderer,
        ctx.clock,
        ctx.rules,
    )
    if not out.success or out.newsletter is None:
        for error in out.errors:
            logger.error(error)
        return 1

    print(f"Newsletter #{out.newsletter.number} composed.")
    if out.statistics:
        print(json.dumps(out.statistics.to_dict(), indent=2))
    return 0


def handle_send(ctx: ServiceContext, args: argparse.Namespace) -> int:
    request = SendRequest(
        newsletter_number=args.number,
        filters=SendFilters(
            dependencies=tuple(args.dependency) if args.dependency else None,
            limit=args.limit,
        ),
        scheduled_at=args.at,
    )
    result = run_send(request, ctx.delivery)
    print_result(result)
    return 0 if result.success else 1


def handle_cancel(ctx: ServiceContext, args: argparse.Namespace) -> int:
    result = run_cancel(CancelRequest(args.number), ctx.delivery)
    print_result(result)
    return 0 if result.success else 1


def handle_send_due(ctx: ServiceContext) -> int:
    out = run_send_due(SendDueRequest(), ctx.delivery)
    if not out.results:
        print("No newsletters due.")
    for number, result in out.results.items():
        state = "ok" if result.success else "failed"
        print(f"#{number}: {state} ({result.sent_count}/{result.recipient_count})")
    return 0 if out.success else 1


def handle_show(ctx: ServiceContext, args: argparse.Namespace) -> int:
    newsletter = ctx.newsletter_repo.find_by_number(args.number)
    if newsletter is None:
        logger.error("Newsletter #%s not found.", args.number)
        return 1

    print(f"{newsletter.title} [{status_label(newsletter.status)}]")
    print(f"Header: {newsletter.header_text}")
    for category, ids in newsletter.categorized_ids().items():
        print(f"  {category}: {ids}")
    if newsletter.scheduled_at:
        print(f"Scheduled: {newsletter.scheduled_at.isoformat()}")
    if newsletter.sent_at:
        print(f"Sent: {newsletter.sent_at.isoformat()}")
    print(newsletter.statistics.model_dump_json(indent=2, exclude_defaults=True))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bulletin newsletter CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply database migrations")

    # recommend
    recommend_parser = subparsers.add_parser("recommend", help="Recommend candidate items")
    recommend_parser.add_argument("--max-items", type=int, default=21)
    recommend_parser.add_argument("--require-image", action="store_true")
    recommend_parser.add_argument(
        "--no-balance", action="store_true", help="Do not balance across topical lines"
    )

    # compose
    compose_parser = subparsers.add_parser("compose", help="Compose a newsletter")
    compose_parser.add_argument("ids", type=int, nargs="+", help="News item ids, in order")
    compose_parser.add_argument("--header", required=True, help="Header text")
    compose_parser.add_argument("--number", type=int, help="Newsletter number (default: next)")
    compose_parser.add_argument("--preview", action="store_true", help="Do not save")

    # send
    send_parser = subparsers.add_parser("send", help="Send or schedule a newsletter")
    send_parser.add_argument("number", type=int)
    send_parser.add_argument(
        "--dependency", type=int, action="append", help="Restrict to a group (repeatable)"
    )
    send_parser.add_argument("--limit", type=int, help="Cap the number of recipients")
    send_parser.add_argument("--at", type=parse_when, help="Schedule at ISO time (with offset)")

    # cancel
    cancel_parser = subparsers.add_parser("cancel", help="Cancel a newsletter")
    cancel_parser.add_argument("number", type=int)

    # send_due
    subparsers.add_parser("send_due", help="Send scheduled newsletters that are due")

    # show
    show_parser = subparsers.add_parser("show", help="Show a newsletter")
    show_parser.add_argument("number", type=int)

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)
    settings = get_settings()

    if args.command == "migrate":
        handle_migrate(settings)
        return 0

    ctx = get_context(settings)

    if args.command == "recommend":
        handle_recommend(ctx, args)
        return 0
    elif args.command == "compose":
        return handle_compose(ctx, args)
    elif args.command == "send":
        return handle_send(ctx, args)
    elif args.command == "cancel":
        return handle_cancel(ctx, args)
    elif args.command == "send_due":
        return handle_send_due(ctx)
    elif args.command == "show":
        return handle_show(ctx, args)

    return 1


if __name__ == "__main__":
    sys.exit(main())
