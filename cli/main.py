#!/usr/bin/env python3
"""
URL Monitor CLI

Command-line access to the change log and its collaborators, for scripts,
cron jobs and debugging. Everything goes through the same LogService the
HTTP API uses.

Commands:

1) record
   - Append one change event to the log.

2) query
   - Print the change events of the last N days (newest first) and the
     summary statistics.

3) prune
   - Remove change events older than N days. Unreadable lines are kept.

4) fetch
   - Print the raw text of a remote http(s) resource.

5) notify
   - Send one change notification through sendgrid / mailgun / smtp.

6) probe
   - Check provider credentials without sending anything.

The HTTP server is started separately, e.g.:

    uvicorn runtime.api.server:app --reload
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Ensure project root is on sys.path when running as a script
ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from configs.settings import settings
from core.api.fetch_proxy import FetchProxy
from core.notify.dispatcher import NotificationDispatcher, NotificationProbe
from core.notify.models import ChangeNotification, ProviderCredentials
from exceptions.exceptions import (
    ChangeValidationError,
    FetchError,
    LogStoreError,
    NotificationError,
    UnknownProviderError,
    UnsupportedUrlError,
)
from runtime.services.log_service import LogService
from runtime.services.retention import parse_days
from runtime.store.log_store import LogStore


def _build_service(log_file: str) -> LogService:
    return LogService(
        LogStore(log_file, fsync=settings.fsync),
        default_window_days=settings.retention_days,
    )


def _credentials(args: argparse.Namespace) -> ProviderCredentials:
    return ProviderCredentials(
        api_key=args.api_key,
        domain=args.domain,
        smtp_server=args.smtp_server,
        smtp_port=args.smtp_port,
        smtp_email=args.smtp_email,
        smtp_password=args.smtp_password,
    )


# ---------------------------------------------------------------------------
# Change log commands
# ---------------------------------------------------------------------------


def cmd_record(args: argparse.Namespace) -> None:
    service = _build_service(args.log_file)
    fields = {
        "timestamp": args.timestamp,
        "url": args.url,
        "email": args.email,
        "lines_added": args.lines_added,
        "lines_removed": args.lines_removed,
        "diff_preview": args.diff_preview,
        "email_status": args.status,
        "check_type": args.check_type,
    }
    record = service.record_change(fields)
    print(f"[URL-Monitor] ✓ Change logged for {record.resource_url} → {args.log_file}")


def cmd_query(args: argparse.Namespace) -> None:
    service = _build_service(args.log_file)
    window = parse_days(args.days, settings.retention_days)
    result = service.query_window(window_days=window)

    if args.json:
        payload = {
            "logs": [record.to_wire() for record in result.records],
            "statistics": result.statistics.model_dump(mode="json"),
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    stats = result.statistics
    print(f"[URL-Monitor] {stats.total_changes} changes in the last {window} days")
    for record in result.records:
        print(
            f"  {record.timestamp.isoformat()}  {record.delivery_status.value:<7}  "
            f"+{record.lines_added}/-{record.lines_removed}  {record.resource_url}"
        )
    print(
        f"[URL-Monitor] sent={stats.sent_count} failed={stats.failed_count} "
        f"pending={stats.pending_count} urls={stats.distinct_resource_count}"
    )
    if stats.oldest_timestamp is not None:
        print(
            f"[URL-Monitor] range {stats.oldest_timestamp.isoformat()} → "
            f"{stats.newest_timestamp.isoformat()}"
        )


def cmd_prune(args: argparse.Namespace) -> None:
    service = _build_service(args.log_file)
    window = parse_days(args.days, settings.retention_days)
    result = service.prune_window(window_days=window)
    print(
        f"[URL-Monitor] ✓ Cleared {result.removed_count} log entries older than {window} days "
        f"({result.remaining_count} remaining)"
    )


# ---------------------------------------------------------------------------
# Collaborator commands
# ---------------------------------------------------------------------------


def cmd_fetch(args: argparse.Namespace) -> None:
    proxy = FetchProxy(timeout=settings.fetch_timeout, user_agent=settings.user_agent)
    result = proxy.fetch(args.url)
    sys.stdout.write(result.text)


def cmd_notify(args: argparse.Namespace) -> None:
    dispatcher = NotificationDispatcher()
    notification = ChangeNotification(
        email=args.email,
        url=args.url,
        lines_added=args.lines_added,
        lines_removed=args.lines_removed,
        diff_preview=args.diff_preview,
        timestamp=args.timestamp,
    )
    result = dispatcher.dispatch(notification, args.service, _credentials(args))
    if not result.success:
        raise NotificationError(result.provider, result.error)
    print(f"[URL-Monitor] ✓ Email sent successfully via {result.provider}")


def cmd_probe(args: argparse.Namespace) -> int:
    result = NotificationProbe().probe(args.email, args.service, _credentials(args))
    mark = "✓" if result.valid else "✗"
    print(f"[URL-Monitor] {mark} {result.message}")
    return 0 if result.valid else 1


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _add_credential_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--service", required=True, help="sendgrid, mailgun or smtp")
    parser.add_argument("--api-key", help="SendGrid / Mailgun API key")
    parser.add_argument("--domain", help="Mailgun sending domain")
    parser.add_argument("--smtp-server", help="SMTP host")
    parser.add_argument("--smtp-port", type=int, help="SMTP port (default 587)")
    parser.add_argument("--smtp-email", help="SMTP login / sender address")
    parser.add_argument("--smtp-password", help="SMTP password")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="URL Monitor CLI")
    parser.add_argument(
        "--log-file",
        default=str(settings.log_file),
        help="Change log file (default: URL_MONITOR_LOG_FILE or 'changes.log')",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # record
    p_record = subparsers.add_parser("record", help="Append one change event")
    p_record.add_argument("--timestamp", required=True, help="ISO-8601 detection time")
    p_record.add_argument("--url", required=True, help="Monitored URL")
    p_record.add_argument("--email", required=True, help="Notification target")
    p_record.add_argument("--lines-added", type=int, default=0)
    p_record.add_argument("--lines-removed", type=int, default=0)
    p_record.add_argument("--diff-preview", default="")
    p_record.add_argument(
        "--status",
        default="pending",
        choices=["pending", "sent", "failed"],
        help="Delivery status of the notification",
    )
    p_record.add_argument("--check-type", default="manual", help="e.g. manual, scheduled")

    # query
    p_query = subparsers.add_parser("query", help="Show change events of the last N days")
    p_query.add_argument(
        "--days",
        help=f"Window in days; invalid or non-positive values mean {settings.retention_days}",
    )
    p_query.add_argument("--json", action="store_true", help="Print JSON instead of text")

    # prune
    p_prune = subparsers.add_parser("prune", help="Remove change events older than N days")
    p_prune.add_argument(
        "--days",
        help=f"Window in days; invalid or non-positive values mean {settings.retention_days}",
    )

    # fetch
    p_fetch = subparsers.add_parser("fetch", help="Print the raw text of a URL")
    p_fetch.add_argument("url", help="http(s) URL to retrieve")

    # notify
    p_notify = subparsers.add_parser("notify", help="Send one change notification")
    p_notify.add_argument("--email", required=True, help="Recipient address")
    p_notify.add_argument("--url", required=True, help="URL that changed")
    p_notify.add_argument("--lines-added", type=int, default=0)
    p_notify.add_argument("--lines-removed", type=int, default=0)
    p_notify.add_argument("--diff-preview", default="")
    p_notify.add_argument("--timestamp", help="ISO-8601 detection time")
    _add_credential_args(p_notify)

    # probe
    p_probe = subparsers.add_parser("probe", help="Check provider credentials")
    p_probe.add_argument("--email", required=True, help="Address used for the check")
    _add_credential_args(p_probe)

    return parser


COMMANDS = {
    "record": cmd_record,
    "query": cmd_query,
    "prune": cmd_prune,
    "fetch": cmd_fetch,
    "notify": cmd_notify,
    "probe": cmd_probe,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    handler = COMMANDS[args.command]
    try:
        return handler(args) or 0
    except UnknownProviderError as e:
        print(
            f"[URL-Monitor] ✗ {e}: {e.provider!r} (known: {', '.join(e.known)})",
            file=sys.stderr,
        )
        return 1
    except (
        ChangeValidationError,
        UnsupportedUrlError,
        LogStoreError,
        FetchError,
        NotificationError,
    ) as e:
        print(f"[URL-Monitor] ✗ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
