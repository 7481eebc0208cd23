import argparse
import json
from pathlib import Path

from . import __version__
from .aliases import available_industries
from .batch import process_batch, read_csv_rows, result_to_row, write_csv_rows
from .cache import ResolutionCache
from .config import ResolverConfig
from .database import SqliteStore
from .env import load_env
from .errors import ConfigError, InputError
from .google_results import GoogleSearchClient
from .logger import get_logger
from .patterns import PatternLearner
from .resolver import ProfileResolver
from .schema import person_from_dict
from .search import build_query_urls, build_relaxed_strategies, build_strict_strategies, with_site
from .storage import JsonFileStore

DEFAULT_STORE = "data/profilefinder.json"
SQLITE_SUFFIXES = (".db", ".sqlite", ".sqlite3")


def open_store(path: str):
    """JSON file store, or SQLite when the path ends in .db/.sqlite."""
    store_path = Path(path)
    if store_path.suffix.lower() in SQLITE_SUFFIXES:
        return SqliteStore(store_path)
    return JsonFileStore(store_path)


def _config(args: argparse.Namespace) -> ResolverConfig:
    try:
        return ResolverConfig.from_env(industry=getattr(args, "industry", None))
    except ConfigError as e:
        raise SystemExit(str(e))


def _person(args: argparse.Namespace):
    try:
        return person_from_dict(
            {
                "first_name": args.first,
                "last_name": args.last,
                "job_title": args.title,
                "organization": args.org,
                "region": args.region,
            }
        )
    except InputError as e:
        raise SystemExit(f"Invalid person: {e}")


def build_resolver(args: argparse.Namespace, config: ResolverConfig) -> ProfileResolver:
    try:
        client = GoogleSearchClient(
            api_key=args.api_key or config.google_api_key,
            cse_id=args.cse_id or config.google_cse_id,
            profile_domain=config.profile_domain,
        )
    except ConfigError as e:
        raise SystemExit(str(e))
    store = open_store(args.store)
    return ProfileResolver(
        client,
        config=config,
        cache=ResolutionCache(store, ttl=config.cache_ttl),
        patterns=PatternLearner(store),
    )


def cmd_resolve(args: argparse.Namespace) -> None:
    config = _config(args)
    person = _person(args)
    resolver = build_resolver(args, config)
    result = resolver.resolve(person)
    if args.json:
        print(json.dumps({**result.to_dict(), "from_cache": result.from_cache}, indent=2))
        return
    row = result_to_row(result)
    print(f"Status: {row.status}{' (cached)' if result.from_cache else ''}")
    print(f"URL: {row.url or '-'}")
    print(f"Confidence: {row.confidence}%  Organization match: {row.organization_match}%")
    if result.breakdown:
        print("Breakdown: " + ", ".join(f"{k}={v:g}" for k, v in result.breakdown.items()))
    if row.review_reason:
        print(f"Reason: {row.review_reason}")
    if row.alternatives:
        print(f"Alternatives: {row.alternatives}")


def cmd_batch(args: argparse.Namespace) -> None:
    input_path = Path(args.input)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    config = _config(args)
    resolver = build_resolver(args, config)
    inputs = read_csv_rows(input_path)
    limit = args.limit if args.limit is not None else config.batch_size
    rows = process_batch(inputs, resolver, delay=config.rate_limits.batch_delay, limit=limit)
    write_csv_rows(Path(args.output), inputs[: len(rows)], rows)

    counts = {}
    for row in rows:
        counts[row.status] = counts.get(row.status, 0) + 1
    print(f"Done. processed={len(rows)} " + " ".join(f"{k.lower().replace(' ', '_')}={v}" for k, v in sorted(counts.items())))
    stats = resolver.cache.stats()
    print(
        f"Cache: hits={stats['hits']} misses={stats['misses']} writes={stats['writes']} "
        f"hit_rate={stats['hit_rate']:.1%} searches_saved={stats['searches_saved']}"
    )
    get_logger().log_metrics_summary()


def cmd_query(args: argparse.Namespace) -> None:
    config = _config(args)
    person = _person(args)
    strategies = build_strict_strategies(person, config.max_pass1_strategies) + build_relaxed_strategies(
        person, config.industry_profile, config.max_pass2_strategies
    )
    print("Google query URLs:")
    for s in strategies:
        url = build_query_urls([with_site(s.query)])[0]
        print(f" - [pass {s.pass_number}] {s.name}: {url}")


def cmd_cache_stats(args: argparse.Namespace) -> None:
    store_path = Path(args.store)
    if not store_path.exists():
        print(f"Store not found: {store_path}")
        return
    config = _config(args)
    cache = ResolutionCache(open_store(args.store), ttl=config.cache_ttl)
    counts = cache.entry_counts()
    print(f"Cache entries in {store_path}: live={counts['live']} expired={counts['expired']}")
    print(f"TTL: {config.cache_ttl}")


def cmd_patterns(args: argparse.Namespace) -> None:
    store_path = Path(args.store)
    if not store_path.exists():
        print(f"Store not found: {store_path}")
        return
    recs = PatternLearner(open_store(args.store)).recommendations()
    print(json.dumps(recs, indent=2))


def _add_person_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--first", required=True, help="First name")
    p.add_argument("--last", required=True, help="Last name")
    p.add_argument("--title", help="Job title")
    p.add_argument("--org", help="Organization / employer")
    p.add_argument("--region", help="Region, state or city")


def _add_runtime_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--industry", choices=available_industries(), help="Industry profile (or set PROFILEFINDER_INDUSTRY)")
    p.add_argument("--store", default=DEFAULT_STORE, help=f"Cache store, .json or .db (default: {DEFAULT_STORE})")
    p.add_argument("--api-key", help="Google API key (or set GOOGLE_API_KEY)")
    p.add_argument("--cse-id", help="Custom Search Engine ID (or set GOOGLE_CSE_ID)")


def main(argv=None):
    # Load .env if present (GOOGLE_API_KEY, GOOGLE_CSE_ID, PROFILEFINDER_*)
    load_env()
    parser = argparse.ArgumentParser(prog="profilefinder", description="Resolve people to public profile URLs")
    parser.add_argument("--version", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command")
    res = subparsers.add_parser("resolve", help="Resolve a single person")
    _add_person_args(res)
    _add_runtime_args(res)
    res.add_argument("--json", action="store_true", help="Print the result as JSON")
    res.set_defaults(func=cmd_resolve)

    bat = subparsers.add_parser("batch", help="Resolve every row of a CSV file")
    bat.add_argument("--input", required=True, help="CSV with first_name,last_name[,job_title,organization,region]")
    bat.add_argument("--output", required=True, help="CSV to write results to")
    bat.add_argument("--limit", type=int, help="Maximum rows to process (default: batch size from config)")
    _add_runtime_args(bat)
    bat.set_defaults(func=cmd_batch)

    qry = subparsers.add_parser("query", help="Print the Google query URLs both search passes would run")
    _add_person_args(qry)
    qry.add_argument("--industry", choices=available_industries(), help="Industry profile")
    qry.set_defaults(func=cmd_query)

    cst = subparsers.add_parser("cache-stats", help="Count live and expired cache entries in a store")
    cst.add_argument("--store", default=DEFAULT_STORE, help=f"Cache store (default: {DEFAULT_STORE})")
    cst.add_argument("--industry", choices=available_industries(), help="Industry profile")
    cst.set_defaults(func=cmd_cache_stats)

    pat = subparsers.add_parser("patterns", help="Show strategy recommendations from past resolutions")
    pat.add_argument("--store", default=DEFAULT_STORE, help=f"Cache store (default: {DEFAULT_STORE})")
    pat.set_defaults(func=cmd_patterns)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
