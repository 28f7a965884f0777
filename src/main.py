"""
AI Tagger - Main Entry Point

Suggests and applies library tags with an LLM from the command line.
"""

import sys
import os
import argparse
import concurrent.futures
import logging

# Add src to path
src_path = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, src_path)

logger = logging.getLogger("ai_tagger")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ai-tagger",
        description="Suggest and apply library tags with an LLM.",
    )
    parser.add_argument("--config", help="Configuration file (YAML)")
    parser.add_argument("--db", help="Library database path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("test-connection", help="Check the configured LLM provider")

    tag = subparsers.add_parser("tag", help="Tag items or a collection")
    tag.add_argument("item_ids", nargs="*", type=int, help="Item IDs to tag")
    tag.add_argument("--collection", type=int, help="Tag every regular item in a collection")
    tag.add_argument("--confirm", action="store_true", help="Ask before applying each suggestion")

    return parser


def print_progress(progress) -> None:
    record = progress.results[-1] if progress.results else None
    if record is None:
        return

    if record.error:
        detail = f"error: {record.error}"
    elif record.applied_tags:
        detail = "added " + ", ".join(record.applied_tags)
    elif record.suggested_tags:
        detail = "suggested " + ", ".join(record.suggested_tags)
    else:
        detail = "no new tags"
    print(f"[{progress.current}/{progress.total}] {record.title}: {detail}", flush=True)


def run_test_connection(container) -> int:
    tagging = container.require_tagging()
    model = tagging.test_connection()
    print(f"Connection OK (model: {model})")
    return 0


def run_tag(container, args) -> int:
    tagging = container.require_tagging()

    confirm = container.confirmation_gate if args.confirm else None

    if args.collection is not None:
        run = tagging.tag_collection(args.collection, progress_callback=print_progress, confirm=confirm)
    elif args.item_ids:
        run = tagging.tag_items(args.item_ids, progress_callback=print_progress, confirm=confirm)
    else:
        print("Nothing to tag: pass item IDs or --collection", file=sys.stderr)
        return 2

    try:
        # Poll so Ctrl+C reaches the main thread while workers run
        while True:
            try:
                report = run.result(timeout=0.5)
                break
            except concurrent.futures.TimeoutError:
                continue
    except KeyboardInterrupt:
        print("\nCancelling; waiting for in-flight requests...", file=sys.stderr)
        run.cancel()
        report = run.result()

    print(report.summary())
    for record in report.errors():
        print(f"  {record.title}: {record.error}", file=sys.stderr)
    return 1 if report.error_count else 0


def main(argv=None) -> int:
    """Application entry point"""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from app.container_factory import AppContainerFactory

    container = AppContainerFactory.create(config_path=args.config, db_path=args.db)
    try:
        if args.command == "test-connection":
            return run_test_connection(container)
        return run_tag(container, args)
    except RuntimeError as e:
        logger.error("%s", e)
        return 1
    finally:
        container.cleanup()


if __name__ == "__main__":
    sys.exit(main())
