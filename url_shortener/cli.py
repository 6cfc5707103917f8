"""
Command-line interface for the local URL shortener.

Usage:
    url-shortener shorten <url> [--custom-code CODE] [--ttl MINUTES]
    url-shortener open <short_code> [--referrer URL] [--user-agent UA]
    url-shortener info <short_code>
    url-shortener list [--active-only]
    url-shortener deactivate <short_code>
    url-shortener purge
    url-shortener stats
    url-shortener logs [--level LEVEL] [--search TEXT]
    url-shortener export-logs
    url-shortener health
"""

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .config import Config, load_config
from .lib.common.logging_config import setup_logging
from .lib.errors import URLShortenerError
from .lib.models import GeoInfo, LogLevel, ShortenedURL
from .lib.service import URLShortenerService


class URLShortenerCLI:
    """Command-line interface for URL shortener."""

    def __init__(self, config: Config, service: Optional[URLShortenerService] = None, verbose: bool = False):
        """Initialize CLI."""
        self.config = config
        self.logger = setup_logging(
            level="DEBUG" if verbose else config.log_level,
            log_file=config.log_file,
            json_format=config.log_json,
        )
        self.service = service or URLShortenerService.from_config(config, logger=self.logger)

    def close(self) -> None:
        self.service.close()

    def short_url(self, short_code: str) -> str:
        """Complete short URL for display."""
        base = self.config.base_url.rstrip("/")
        prefix = self.config.path_prefix.strip("/")
        return f"{base}/{prefix}/{short_code}" if prefix else f"{base}/{short_code}"

    def url_to_dict(self, record: ShortenedURL) -> Dict[str, Any]:
        data = record.model_dump(mode="json")
        data["short_url"] = self.short_url(record.short_code)
        return data

    def shorten(self, url: str, custom_code: Optional[str] = None, ttl: Optional[int] = None) -> int:
        """Shorten a URL."""
        record = self.service.create_short_url(url, custom_code, ttl)
        return self._ok({
            **self.url_to_dict(record),
            "message": f"Successfully shortened URL to: {record.short_code}",
        })

    def open(
        self,
        short_code: str,
        referrer: Optional[str] = None,
        user_agent: Optional[str] = None,
        country: Optional[str] = None,
    ) -> int:
        """Resolve a short code and record a click."""
        geo = GeoInfo(country=country) if country else None
        record = self.service.visit(short_code, referrer=referrer, user_agent=user_agent, geo=geo)
        return self._ok({
            "short_code": record.short_code,
            "original_url": record.original_url,
        })

    def info(self, short_code: str) -> int:
        """Get record details and click analytics."""
        info = self.service.get_url_info(short_code)
        return self._ok({
            **self.url_to_dict(info["url"]),
            "analytics": info["analytics"].to_dict(),
            "breakdown": info["breakdown"],
        })

    def list_urls(self, active_only: bool = False) -> int:
        """List URLs, newest first."""
        urls = self.service.list_urls(active_only=active_only)
        return self._ok({
            "count": len(urls),
            "urls": [self.url_to_dict(u) for u in urls],
        })

    def deactivate(self, short_code: str) -> int:
        record = self.service.deactivate(short_code)
        return self._ok(self.url_to_dict(record))

    def purge(self) -> int:
        return self._ok({"removed": self.service.purge_expired()})

    def stats(self) -> int:
        return self._ok({"statistics": self.service.get_statistics()})

    def logs(self, level: Optional[str] = None, search: Optional[str] = None) -> int:
        entries = self.service.query_logs(level=level, search_text=search)
        return self._ok({
            "count": len(entries),
            "entries": [e.model_dump(mode="json") for e in entries],
        })

    def export_logs(self) -> int:
        print(self.service.export_logs())
        return 0

    def health(self) -> int:
        """Check store health."""
        health_status = self.service.health_check()
        stats = self.service.get_statistics()
        print(json.dumps({
            "success": health_status["overall"],
            "health": health_status,
            "statistics": stats,
        }, indent=2))
        return 0 if health_status["overall"] else 1

    def run(self, args: argparse.Namespace) -> int:
        """Dispatch a parsed command, reporting errors as JSON on stderr."""
        try:
            if args.command == "shorten":
                return self.shorten(args.url, args.custom_code, args.ttl)
            if args.command == "open":
                return self.open(args.short_code, args.referrer, args.user_agent, args.country)
            if args.command == "info":
                return self.info(args.short_code)
            if args.command == "list":
                return self.list_urls(args.active_only)
            if args.command == "deactivate":
                return self.deactivate(args.short_code)
            if args.command == "purge":
                return self.purge()
            if args.command == "stats":
                return self.stats()
            if args.command == "logs":
                return self.logs(args.level, args.search)
            if args.command == "export-logs":
                return self.export_logs()
            if args.command == "health":
                return self.health()
        except URLShortenerError as e:
            print(json.dumps({
                "success": False,
                **e.to_dict(),
            }, indent=2), file=sys.stderr)
            return 1
        raise ValueError(f"Unknown command: {args.command}")

    @staticmethod
    def _ok(payload: Dict[str, Any]) -> int:
        print(json.dumps({"success": True, **payload}, indent=2))
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="url-shortener",
        description="Local URL shortener with click analytics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Shorten a URL for one hour
  %(prog)s shorten https://example.com/long/url --ttl 60

  # Shorten with custom code
  %(prog)s shorten https://example.com/long/url --custom-code mylink

  # Follow a short code (records a click)
  %(prog)s open mylink --referrer https://news.example

  # Show analytics
  %(prog)s info mylink

  # Search the activity log
  %(prog)s logs --level warning --search mylink
        """
    )

    parser.add_argument(
        "--data-dir",
        help="Directory for the file store (default: from DATA_DIR env or ~/.url_shortener)"
    )

    parser.add_argument(
        "--backend",
        choices=["memory", "file", "redis"],
        help="Store backend (default: from STORE_BACKEND env or file)"
    )

    parser.add_argument(
        "--redis-url",
        help="Redis connection URL for the redis backend (default: from REDIS_URL env)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    shorten_parser = subparsers.add_parser("shorten", help="Shorten a URL")
    shorten_parser.add_argument("url", help="URL to shorten")
    shorten_parser.add_argument("--custom-code", help="Custom short code (3-20 letters or digits)")
    shorten_parser.add_argument("--ttl", type=int, help="Lifetime in minutes (default: DEFAULT_TTL_MINUTES or 30)")

    open_parser = subparsers.add_parser("open", help="Resolve a short code and record a click")
    open_parser.add_argument("short_code", help="Short code to open")
    open_parser.add_argument("--referrer", help="Referring page")
    open_parser.add_argument("--user-agent", help="Visitor user agent")
    open_parser.add_argument("--country", help="Visitor country")

    info_parser = subparsers.add_parser("info", help="Show a short URL and its analytics")
    info_parser.add_argument("short_code", help="Short code to look up")

    list_parser = subparsers.add_parser("list", help="List short URLs, newest first")
    list_parser.add_argument("--active-only", action="store_true", help="Hide expired and deactivated URLs")

    deactivate_parser = subparsers.add_parser("deactivate", help="Revoke a short URL")
    deactivate_parser.add_argument("short_code", help="Short code to revoke")

    subparsers.add_parser("purge", help="Delete expired short URLs")
    subparsers.add_parser("stats", help="Show dashboard totals")

    logs_parser = subparsers.add_parser("logs", help="Query the activity log")
    logs_parser.add_argument("--level", choices=[level.value for level in LogLevel], help="Only this level")
    logs_parser.add_argument("--search", help="Case-insensitive text to look for")

    subparsers.add_parser("export-logs", help="Print the activity log as JSON")
    subparsers.add_parser("health", help="Check store health")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    overrides = {}
    if args.data_dir:
        overrides["data_dir"] = args.data_dir
    if args.backend:
        overrides["store_backend"] = args.backend
    if args.redis_url:
        overrides["redis_url"] = args.redis_url

    try:
        cli = URLShortenerCLI(load_config(**overrides), verbose=args.verbose)
    except URLShortenerError as e:
        print(json.dumps({"success": False, **e.to_dict()}, indent=2), file=sys.stderr)
        return 1
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        print(json.dumps({
            "success": False,
            "error": "invalid_config",
            "message": f"Invalid configuration: {problems}",
        }, indent=2), file=sys.stderr)
        return 1

    try:
        return cli.run(args)
    finally:
        cli.close()


if __name__ == "__main__":
    sys.exit(main())
