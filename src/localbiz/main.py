#!/usr/bin/env python3
"""CLI entry point for the local business website pipeline.

Usage:
    localbiz discover --city "Oxford, MS" --category barber --max-results 10
    localbiz generate --limit 5 --templates 2
    localbiz deploy --limit 5
    localbiz pipeline --limit 10 --verbose
    localbiz pipeline --dry-run
    localbiz stats
    localbiz preview --list

Every external credential is optional. Without one the matching stage runs
in mock mode against deterministic synthetic data, so the full pipeline
works offline against the local SQLite database.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from .categories import (
    CATEGORY_ALIASES,
    CATEGORY_LABELS,
    DEFAULT_AREAS,
    DEFAULT_CATEGORIES,
    BusinessCategory,
    SearchArea,
    parse_area,
    resolve_category,
)
from .config import Config, ConfigError, config as default_config
from .deployment import DeploymentService
from .discovery import DiscoveryConfig, DiscoveryService
from .enrichment import EnrichmentService
from .generation import DEFAULT_TEMPLATES_PER_BUSINESS, GenerationService, GeneratorConfig
from .integrations.generators import create_website_generator
from .integrations.places import DEFAULT_MAX_RESULTS, create_places_client
from .integrations.vercel import create_deployer
from .logging_utils import setup_logging
from .orchestrator import PipelineConfig, PipelineOrchestrator
from .store import BusinessStore
from .templates import TEMPLATE_ORDER
from .utils.text import sanitize_project_name

logger = logging.getLogger(__name__)


def progress_callback(stage: str, current: int, total: int) -> None:
    """Callback to display progress during pipeline execution.

    Args:
        stage: Current pipeline stage name.
        current: Number of items completed.
        total: Total number of items.
    """
    if total > 0:
        percent = (current / total) * 100
        bar_length = 30
        filled = int(bar_length * current / total)
        bar = "█" * filled + "░" * (bar_length - filled)
        print(f"\r[{bar}] {percent:5.1f}% - {stage} ({current}/{total})", end="", flush=True)
    else:
        print(f"\r{stage}...", end="", flush=True)


def parse_categories(values: Optional[list[str]]) -> list[BusinessCategory]:
    """Resolve category names and aliases, defaulting to the standard set.

    Raises:
        ValueError: If a name matches no category.
    """
    if not values:
        return list(DEFAULT_CATEGORIES)

    categories = []
    for value in values:
        for name in value.split(","):
            if not name.strip():
                continue
            category = resolve_category(name)
            if category is None:
                raise ValueError(f"Unknown category: {name.strip()}")
            if category not in categories:
                categories.append(category)
    return categories


def parse_areas(values: Optional[list[str]]) -> list[SearchArea]:
    """Parse repeated --city values, defaulting to the standard areas."""
    if not values:
        return list(DEFAULT_AREAS)
    return [parse_area(value) for value in values]


def build_store(settings: Config) -> BusinessStore:
    return BusinessStore.from_url(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)


def build_places(settings: Config):
    return create_places_client(
        api_key=settings.GOOGLE_PLACES_API_KEY or None,
        requests_per_second=settings.PLACES_REQUESTS_PER_SECOND,
    )


def build_generator(settings: Config):
    model = settings.OPENAI_MODEL if settings.AI_PROVIDER == "openai" else settings.ANTHROPIC_MODEL
    return create_website_generator(
        settings.AI_PROVIDER,
        api_key=settings.ai_api_key or None,
        model=model,
        requests_per_second=settings.AI_REQUESTS_PER_SECOND,
    )


def build_deployer(
    settings: Config,
    max_attempts: Optional[int] = None,
    retry_delay: Optional[float] = None,
):
    return create_deployer(
        token=settings.VERCEL_TOKEN or None,
        team_id=settings.VERCEL_TEAM_ID or None,
        poll_interval=settings.DEPLOY_POLL_INTERVAL_SECONDS,
        deploy_timeout=settings.DEPLOY_TIMEOUT_SECONDS,
        max_attempts=max_attempts or settings.RETRY_MAX_ATTEMPTS,
        retry_delay=settings.RETRY_DELAY_SECONDS if retry_delay is None else retry_delay,
        requests_per_second=settings.VERCEL_REQUESTS_PER_SECOND,
    )


def print_env_status(settings: Config) -> None:
    """Print which credentials are set and which services run in mock mode."""
    rows = [
        ("GOOGLE_PLACES_API_KEY", "places"),
        ("ANTHROPIC_API_KEY" if settings.AI_PROVIDER != "openai" else "OPENAI_API_KEY", "ai"),
        ("VERCEL_TOKEN", "deployment"),
    ]

    print("\nEnvironment Status:")
    print("-" * 50)
    print(f"  DATABASE_URL: {settings.DATABASE_URL}")
    print(f"  AI_PROVIDER: {settings.AI_PROVIDER}")
    for var, service in rows:
        mock = settings.is_mock_mode(service)
        symbol = "-" if mock else "✓"
        mode = "mock mode" if mock else "live"
        print(f"  [{symbol}] {var} ({service}: {mode})")
    if settings.VERCEL_TEAM_ID:
        print("  [✓] VERCEL_TEAM_ID")
    print("-" * 50)


def print_categories() -> None:
    print("\nCategories:")
    print("-" * 50)
    for category in BusinessCategory:
        aliases = sorted(
            alias for alias, target in CATEGORY_ALIASES.items()
            if target == category and alias != category.value
        )
        alias_text = f" (aliases: {', '.join(aliases)})" if aliases else ""
        print(f"  {category.value:<15} {CATEGORY_LABELS[category]}{alias_text}")
    print("\nTemplates:")
    for template in TEMPLATE_ORDER:
        print(f"  {template.value}")


def _print_section(title: str, values: dict[str, Any]) -> None:
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)
    for key, value in values.items():
        print(f"  {key.replace('_', ' ').title()}: {value}")


async def cmd_discover(args: argparse.Namespace, settings: Config) -> tuple[dict, bool]:
    store = build_store(settings)
    try:
        await store.initialize()
        service = DiscoveryService(
            store, build_places(settings), progress_callback=None if args.quiet else progress_callback
        )
        summary = await service.run(
            DiscoveryConfig(
                areas=parse_areas(args.city),
                categories=parse_categories(args.category),
                max_results_per_search=args.max_results,
                only_operational=not args.include_closed,
                min_rating=args.min_rating,
            )
        )
    finally:
        await store.close()

    _print_section("DISCOVERY RESULTS", {
        "total_found": summary.total_found,
        "without_website": summary.without_website,
        "newly_saved": summary.newly_saved,
        "already_exists": summary.already_exists,
        "errors": len(summary.errors),
    })
    return summary.to_dict(), not summary.errors


async def cmd_enrich(args: argparse.Namespace, settings: Config) -> tuple[dict, bool]:
    store = build_store(settings)
    try:
        await store.initialize()
        summary = await EnrichmentService(store, build_places(settings)).run(limit=args.limit)
    finally:
        await store.close()

    _print_section("ENRICHMENT RESULTS", {
        "total": summary.total,
        "enriched": summary.enriched,
        "with_website": summary.with_website,
        "failed": summary.failed,
    })
    return summary.to_dict(), summary.failed == 0


async def cmd_generate(args: argparse.Namespace, settings: Config) -> tuple[dict, bool]:
    settings.validate_for_generation()
    store = build_store(settings)
    try:
        await store.initialize()
        service = GenerationService(
            store,
            build_generator(settings),
            GeneratorConfig(templates_per_business=args.templates),
        )

        if args.business_id:
            business = await store.get_business_by_id(args.business_id)
            if business is None:
                print(f"Error: Business not found: {args.business_id}")
                return {"error": f"Business not found: {args.business_id}"}, False
            result = await service.generate_for_business(business)
            _print_section("GENERATION RESULT", {
                "business": result.business_name,
                "websites_generated": result.websites_generated,
                "error": result.error or "-",
            })
            return result.to_dict(), result.success

        summary = await service.run(limit=args.limit)
    finally:
        await store.close()

    _print_section("GENERATION RESULTS", {
        "total_businesses": summary.total_businesses,
        "successful": summary.successful_generations,
        "failed": summary.failed_generations,
        "websites_created": summary.total_websites_created,
    })
    return summary.to_dict(), summary.failed_generations == 0


async def cmd_deploy(args: argparse.Namespace, settings: Config) -> tuple[dict, bool]:
    store = build_store(settings)
    try:
        await store.initialize()
        service = DeploymentService(store, build_deployer(settings))

        if args.website_id:
            result = await service.deploy_website_by_id(args.website_id)
            _print_section("DEPLOYMENT RESULT", {
                "status": result.status.value,
                "url": result.url or "-",
                "error": result.error or "-",
            })
            return result.to_dict(), result.success

        batch = await service.deploy_pending(limit=args.limit)
    finally:
        await store.close()

    _print_section("DEPLOYMENT RESULTS", {
        "total": batch.total,
        "successful": batch.successful,
        "failed": batch.failed,
    })
    for item in batch.results:
        symbol = "✓" if item.result.success else "✗"
        print(f"  [{symbol}] {item.business_name}: {item.result.url or item.result.error}")
    return batch.to_dict(), batch.failed == 0


async def cmd_pipeline(args: argparse.Namespace, settings: Config) -> tuple[dict, bool]:
    settings.validate_all()

    only_flags = [args.discover_only, args.generate_only, args.deploy_only]
    if sum(only_flags) > 1:
        raise ValueError("Use at most one of --discover-only, --generate-only, --deploy-only")
    any_only = any(only_flags)

    pipeline_config = PipelineConfig(
        limit=args.limit,
        templates_per_business=args.templates,
        areas=parse_areas(args.city),
        categories=parse_categories(args.category),
        max_results_per_search=args.max_results,
        skip_discovery=any_only and not args.discover_only,
        skip_generation=any_only and not args.generate_only,
        skip_deployment=any_only and not args.deploy_only,
        dry_run=args.dry_run,
    )

    store = build_store(settings)
    try:
        await store.initialize()
        orchestrator = PipelineOrchestrator(
            store,
            build_places(settings),
            build_generator(settings),
            build_deployer(settings, args.max_retries, args.retry_delay),
            config=pipeline_config,
            progress_callback=None if args.quiet else progress_callback,
        )
        result = await orchestrator.run()
    finally:
        await store.close()

    if not args.quiet:
        print("\r" + " " * 80 + "\r", end="")

    print("\n" + "=" * 60)
    print("PIPELINE RESULTS" + (" [DRY RUN]" if args.dry_run else ""))
    print("=" * 60)
    status_symbol = "✓" if result.success else "✗"
    print(f"\nStatus: [{status_symbol}] {'SUCCESS' if result.success else 'FAILED'}")
    print(f"Duration: {result.duration_seconds:.1f} seconds")
    if result.discovery:
        print(f"  Discovery: {result.discovery.newly_saved} new of {result.discovery.total_found} found")
    if result.generation:
        print(f"  Generation: {result.generation.total_websites_created} website(s) created")
    if result.deployment:
        print(f"  Deployment: {result.deployment.successful}/{result.deployment.total} deployed")
    for stage, plan in result.plan.items():
        print(f"  Would run {stage}: {plan}")
    if result.errors:
        print(f"\nErrors ({len(result.errors)}):")
        for error in result.errors[:5]:
            print(f"  - {error[:100]}")

    return result.to_dict(), result.success


async def cmd_stats(args: argparse.Namespace, settings: Config) -> tuple[dict, bool]:
    store = build_store(settings)
    try:
        await store.initialize()
        stats = await store.get_stats()
    finally:
        await store.close()

    _print_section("DATABASE STATS", {
        "total_businesses": stats.total_businesses,
        "total_websites": stats.total_websites,
        "total_outreach": stats.total_outreach,
    })
    print("\n  By Status:")
    for status, count in stats.by_status.items():
        print(f"    {status:<20} {count}")
    if stats.by_source:
        print("\n  By Source:")
        for source, count in stats.by_source.items():
            print(f"    {source:<20} {count}")
    return stats.to_dict(), True


async def cmd_preview(args: argparse.Namespace, settings: Config) -> tuple[dict, bool]:
    store = build_store(settings)
    try:
        await store.initialize()
        if args.list:
            listings = await store.list_websites(limit=args.limit)
        elif args.id:
            website = await store.get_website_by_id(args.id)
            missing = f"Website not found: {args.id}"
        elif args.business_id:
            website = await store.get_latest_website_for_business(args.business_id)
            missing = f"No websites for business: {args.business_id}"
        else:
            website = await store.get_latest_website()
            missing = "No generated websites found. Run 'localbiz generate' first."

        if not args.list and website is not None:
            business = await store.get_business_by_id(website.business_id)
    finally:
        await store.close()

    if args.list:
        if not listings:
            print("No generated websites found. Run 'localbiz generate' first.")
        else:
            print(f"\n{'ID':<38} {'Business':<25} {'Template':<20} {'Size':<8} Created")
            print("-" * 105)
            for item in listings:
                created = item.created_at.strftime("%Y-%m-%d") if item.created_at else "-"
                print(
                    f"{item.website_id:<38} {item.business_name[:25]:<25} "
                    f"{item.template_name:<20} {item.size_chars:<8} {created}"
                )
            print(f"\nTotal: {len(listings)} website(s)")
        return {"total": len(listings), "websites": [item.to_dict() for item in listings]}, True

    if website is None:
        print(f"Error: {missing}")
        return {"error": missing}, False

    business_name = business.name if business else "site"
    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    slug = sanitize_project_name(business_name) or "site"
    files = [out_dir / "preview.html", out_dir / f"{slug}-{website.template_name}.html"]
    for path in files:
        path.write_text(website.html_content, encoding="utf-8")

    print(f"Previewing: {business_name} ({website.template_name})")
    for path in files:
        print(f"  Saved to: {path}")
    return {
        "website_id": website.id,
        "business_id": website.business_id,
        "business_name": business_name,
        "template_name": website.template_name,
        "variation_number": website.variation_number,
        "size_chars": len(website.html_content),
        "files": [str(path) for path in files],
    }, True


COMMANDS = {
    "discover": cmd_discover,
    "enrich": cmd_enrich,
    "generate": cmd_generate,
    "deploy": cmd_deploy,
    "pipeline": cmd_pipeline,
    "stats": cmd_stats,
    "preview": cmd_preview,
}


def _add_area_arguments(parser: argparse.ArgumentParser) -> None:
    search = parser.add_argument_group("search options")
    search.add_argument(
        "--city",
        action="append",
        help='Area to search as "City, ST" (repeatable; state defaults to MS)',
    )
    search.add_argument(
        "--category",
        action="append",
        help="Category or alias, e.g. barber, restaurant (repeatable or comma-separated)",
    )
    search.add_argument(
        "--max-results",
        type=int,
        default=DEFAULT_MAX_RESULTS,
        help=f"Maximum places per search (default: {DEFAULT_MAX_RESULTS})",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    common = argparse.ArgumentParser(add_help=False)
    output = common.add_argument_group("output options")
    output.add_argument("--output", "-o", type=str, default=None, help="Save results to JSON file")
    output.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")
    output.add_argument("--debug", action="store_true", help="Enable debug output")
    output.add_argument("--quiet", "-q", action="store_true", help="Suppress progress output")

    parser = argparse.ArgumentParser(
        prog="localbiz",
        description="Discover local businesses without websites, generate sites and deploy them",
        epilog="""
Examples:
  %(prog)s discover --city "Oxford, MS" --category barber
  %(prog)s generate --limit 5 --templates 3
  %(prog)s pipeline --limit 10 --dry-run
  %(prog)s preview --id <website-id> --out-dir ./output
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    discover = subparsers.add_parser("discover", parents=[common], help="Find businesses without websites")
    _add_area_arguments(discover)
    filters = discover.add_argument_group("filter options")
    filters.add_argument("--min-rating", type=float, default=None, help="Minimum star rating")
    filters.add_argument(
        "--include-closed", action="store_true", help="Keep places that are not OPERATIONAL"
    )

    enrich = subparsers.add_parser("enrich", parents=[common], help="Refresh details for discovered businesses")
    enrich.add_argument("--limit", type=int, default=50, help="Maximum businesses (default: 50)")

    generate = subparsers.add_parser("generate", parents=[common], help="Generate websites")
    generate.add_argument("--limit", type=int, default=10, help="Maximum businesses (default: 10)")
    generate.add_argument(
        "--templates",
        type=int,
        choices=range(1, len(TEMPLATE_ORDER) + 1),
        default=DEFAULT_TEMPLATES_PER_BUSINESS,
        help=f"Variations per business (default: {DEFAULT_TEMPLATES_PER_BUSINESS})",
    )
    generate.add_argument("--business-id", default=None, help="Generate for one business only")

    deploy = subparsers.add_parser("deploy", parents=[common], help="Deploy pending websites")
    deploy.add_argument("--limit", type=int, default=10, help="Maximum websites (default: 10)")
    deploy.add_argument("--website-id", default=None, help="Deploy (or re-deploy) one website")

    pipeline = subparsers.add_parser("pipeline", parents=[common], help="Run all stages in order")
    pipeline.add_argument("--limit", type=int, default=10, help="Items per stage (default: 10)")
    pipeline.add_argument(
        "--templates",
        type=int,
        choices=range(1, len(TEMPLATE_ORDER) + 1),
        default=DEFAULT_TEMPLATES_PER_BUSINESS,
        help=f"Variations per business (default: {DEFAULT_TEMPLATES_PER_BUSINESS})",
    )
    _add_area_arguments(pipeline)
    steps = pipeline.add_argument_group("stage options")
    steps.add_argument("--discover-only", action="store_true", help="Run discovery only")
    steps.add_argument("--generate-only", action="store_true", help="Run generation only")
    steps.add_argument("--deploy-only", action="store_true", help="Run deployment only")
    steps.add_argument(
        "--dry-run", action="store_true", help="Show what would happen without changes"
    )
    retry = pipeline.add_argument_group("retry options")
    retry.add_argument(
        "--max-retries",
        type=int,
        default=None,
        help="Upload attempts per deployment (default: RETRY_MAX_ATTEMPTS)",
    )
    retry.add_argument(
        "--retry-delay",
        type=float,
        default=None,
        help="Base upload retry delay in seconds (default: RETRY_DELAY_SECONDS)",
    )

    preview = subparsers.add_parser(
        "preview", parents=[common], help="List generated websites or export one to a file"
    )
    target = preview.add_mutually_exclusive_group()
    target.add_argument("--list", action="store_true", help="List generated websites")
    target.add_argument("--id", default=None, help="Export this website (default: the latest)")
    target.add_argument("--business-id", default=None, help="Export the latest website of a business")
    preview.add_argument("--limit", type=int, default=100, help="Maximum websites to list (default: 100)")
    preview.add_argument(
        "--out-dir", default="output", help="Directory for exported HTML (default: ./output)"
    )

    subparsers.add_parser("stats", parents=[common], help="Show database statistics")
    subparsers.add_parser("categories", parents=[common], help="List categories and aliases")
    subparsers.add_parser("check-env", parents=[common], help="Show credential and mock-mode status")

    return parser


def main(argv: Optional[list[str]] = None, settings: Optional[Config] = None) -> int:
    """Main entry point for the CLI.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parser = create_parser()
    args = parser.parse_args(argv)
    settings = settings or default_config

    if args.debug or settings.DEBUG:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    else:
        # Progress output owns the terminal unless LOG_LEVEL asks for less
        level = max(logging.WARNING, settings.get_log_level())
    setup_logging(level=logging.getLevelName(level), structured=settings.is_production())

    if args.command == "check-env":
        print_env_status(settings)
        return 0
    if args.command == "categories":
        print_categories()
        return 0

    try:
        payload, ok = asyncio.run(COMMANDS[args.command](args, settings))
    except (ConfigError, ValueError) as e:
        logger.debug("%s command failed", args.command, exc_info=True)
        print(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\n\nCancelled by user.")
        return 130

    if args.output:
        output_path = Path(args.output)
        with open(output_path, "w") as f:
            json.dump(payload, f, indent=2, default=str)
        print(f"\nResults saved to: {output_path}")

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
