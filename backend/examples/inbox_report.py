"""Example client that prints a usage report from the inbox read API."""
from __future__ import annotations

import argparse
import os

import requests


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print inbox statistics and recent conversations")
    parser.add_argument(
        "--api-url",
        default=os.environ.get("INBOX_API_URL", "http://127.0.0.1:3000/api"),
        help="Inbox API base URL (default: %(default)s or INBOX_API_URL)",
    )
    parser.add_argument(
        "--conversations",
        type=int,
        default=10,
        help="Number of most recent conversations to list (default: %(default)s)",
    )
    parser.add_argument("--search", help="Optional text to search for across all messages")
    return parser.parse_args()


def _get(api_url: str, path: str, **params):
    response = requests.get(f"{api_url}{path}", params=params or None, timeout=10)
    response.raise_for_status()
    return response.json()


def main() -> None:
    args = parse_args()
    api_url = args.api_url.rstrip("/")

    health = requests.get(f"{api_url}/health", timeout=10)
    print("Store reachable:", health.json().get("reachable"))
    if not health.ok:
        print("Detail:", health.json().get("detail"))
        return

    stats = _get(api_url, "/stats")
    print(
        "Messages: {totalMessages} ({incomingMessages} in / {outgoingMessages} out), "
        "users: {totalUsers}, today: {todayMessages}".format(**stats)
    )

    print("Last 7 days:")
    for bucket in _get(api_url, "/stats/weekly"):
        print(f"  {bucket['date']}  {bucket['total']:>5}  in={bucket['incoming']} out={bucket['outgoing']}")

    print("Recent conversations:")
    for summary in _get(api_url, "/conversations")[: args.conversations]:
        arrow = "<-" if summary["lastMessageDirection"] == "in" else "->"
        print(f"  {summary['lastMessageTime']}  {summary['userId']}  {arrow} {summary['lastMessageText'][:60]}")

    if args.search:
        matches = _get(api_url, "/search", q=args.search)
        print(f"Matches for {args.search!r}: {len(matches)}")
        for message in matches:
            print(f"  {message['createdAt']}  {message['userId']}  {message['text'][:60]}")


if __name__ == "__main__":
    main()
