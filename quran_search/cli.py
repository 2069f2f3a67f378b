# quran_search/cli.py
"""
Command-line interface for Quran Search.
"""
import argparse
import json
import sys
import logging
from pathlib import Path

from .config import Config, get_config
from .engine.service import QuranSearchService
from .exceptions import QuranSearchError
from .utils.corpus import CorpusLoader, build_bundled_index
from .utils.downloader import QuranDownloader
from .utils.storage import FileStore


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


def make_service(config: Config, limit=None, any_term: bool = False) -> QuranSearchService:
    """Service over the configured dataset, caching its index in the data dir."""
    options = config.search.to_options(limit=limit)
    if any_term:
        options.combine_with = "OR"
    return QuranSearchService(
        corpus_source=CorpusLoader(config.quran_dir, config.corpus.editions),
        store=FileStore(config.cache_dir),
        options=options,
        cache_key=config.search.cache_key,
        bundled_index=config.index_path
    )


def cmd_init(args):
    """Initialize configuration and data directories."""
    config = Config(data_dir=Path(args.data_dir))
    config.save()
    print(f"Initialized configuration at {config.config_path}")
    print(f"Data directory: {config.data_dir}")


def cmd_download(args):
    """Download the dataset."""
    config = get_config()
    downloader = QuranDownloader(config)
    written = downloader.download_all(args.editions)

    print("\nDownload Status:")
    for edition, count in written.items():
        print(f"  {edition}: {count} new files")


def cmd_build_index(args):
    """Build the bundled index and compact export."""
    config = get_config()
    loader = CorpusLoader(config.quran_dir, config.corpus.editions)
    index = build_bundled_index(
        loader,
        index_path=config.index_path,
        compact_path=None if args.no_compact else config.compact_path,
        options=config.search.to_options()
    )
    print(f"\n✓ Indexed {len(index)} verses ({index.term_count} terms)")
    print(f"  Index: {config.index_path}")
    if not args.no_compact:
        print(f"  Compact export: {config.compact_path}")


def cmd_search(args):
    """Search the corpus."""
    config = get_config()
    with make_service(config, limit=args.limit, any_term=args.any) as service:
        results = service.search(args.query)

    if args.json:
        print(json.dumps([r.to_dict() for r in results], indent=2, ensure_ascii=False))
        return

    if not results:
        print("No results found.")
        return

    print(f"\n{len(results)} results for '{args.query}':")
    print("-" * 80)
    for r in results:
        print(f"  {r.surah_number}:{r.verse_number} [{r.edition}] {r.surah_english_name}  score={r.score:.3f}")
        print(f"    {r.raw_text}")
    print()


def cmd_status(args):
    """Show dataset and index status."""
    config = get_config()
    config.print_status()


def cmd_clear_cache(args):
    """Clear cached indexes."""
    config = get_config()
    store = FileStore(config.cache_dir)
    removed = store.clear()
    print(f"Cache cleared: {removed} entries")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="quran-search",
        description="Offline full-text search over Quran editions"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init
    p_init = subparsers.add_parser("init", help="Initialize configuration")
    p_init.add_argument("--data-dir", default="./quran_data", help="Data directory")
    p_init.set_defaults(func=cmd_init)

    # download
    p_download = subparsers.add_parser("download", help="Download the dataset")
    p_download.add_argument("--editions", nargs="+", help="Editions to download (default: configured)")
    p_download.set_defaults(func=cmd_download)

    # build-index
    p_build = subparsers.add_parser("build-index", help="Build the bundled search index")
    p_build.add_argument("--no-compact", action="store_true", help="Skip the compact export")
    p_build.set_defaults(func=cmd_build_index)

    # search
    p_search = subparsers.add_parser("search", help="Search verses")
    p_search.add_argument("query", help="Search text (Arabic, with or without diacritics)")
    p_search.add_argument("-n", "--limit", type=int, default=20, help="Maximum results")
    p_search.add_argument("--any", action="store_true", help="Match any term instead of all")
    p_search.add_argument("--json", action="store_true", help="Print results as JSON")
    p_search.set_defaults(func=cmd_search)

    # status
    p_status = subparsers.add_parser("status", help="Show status")
    p_status.set_defaults(func=cmd_status)

    # clear-cache
    p_cache = subparsers.add_parser("clear-cache", help="Clear cached indexes")
    p_cache.set_defaults(func=cmd_clear_cache)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.verbose)

    try:
        args.func(args)
    except QuranSearchError as e:
        logging.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
