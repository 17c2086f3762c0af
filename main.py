"""
Entry point — Whoop connector CLI for the Jarvis health log.

Usage:
    python main.py connect             (OAuth2 dance, stores tokens)
    python main.py status
    python main.py profile
    python main.py recovery [--days N]
    python main.py workouts [--days N]
    python main.py import [--days N]   (copy Whoop biometrics into the health log)
    python main.py disconnect

First-time setup:
    1. Copy .env.example → .env and fill in all values
    2. Deploy the relay (relay/handler.py) and set RELAY_URL
    3. Run: python main.py connect
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timedelta, timezone

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


def positive_int(value: str) -> int:
    days = int(value)
    if days < 1:
        raise argparse.ArgumentTypeError(f"must be a positive number of days: {value}")
    return days


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jarvis-whoop")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("connect", help="Authorize Whoop access")
    sub.add_parser("disconnect", help="Forget stored Whoop tokens")
    sub.add_parser("status", help="Show connection status")
    sub.add_parser("profile", help="Print the Whoop profile")
    for name in ("recovery", "workouts", "import"):
        cmd = sub.add_parser(name)
        cmd.add_argument("--days", type=positive_int, default=None)
    return parser


async def run(args) -> int:
    from config.settings import DEFAULT_IMPORT_DAYS
    from db.database import init_db
    from whoop.auth import WhoopAuth, run_oauth_flow
    from whoop.client import WhoopClient
    from whoop.errors import WhoopError
    from whoop.relay_client import RelayClient
    from whoop.storage import DbStorage, MemoryStorage
    from whoop.sync import import_biometrics, summarize_workout
    from whoop.token_store import TokenStore

    init_db()
    token_store = TokenStore(DbStorage())
    relay = RelayClient()
    client = WhoopClient(token_store, relay)
    days = getattr(args, "days", None)
    if days is None:
        days = DEFAULT_IMPORT_DAYS
    start = datetime.now(timezone.utc) - timedelta(days=days)

    if args.command == "connect":
        result = await run_oauth_flow(WhoopAuth(token_store, MemoryStorage(), relay))
        if not result.success:
            logger.error(f"Whoop connection failed: {result.error}")
            return 1
        print("Whoop connected.")
        return 0

    if args.command == "disconnect":
        token_store.clear_token()
        print("Whoop disconnected.")
        return 0

    if args.command == "status":
        print("connected" if token_store.is_connected() else "not connected")
        return 0

    try:
        if args.command == "profile":
            print(json.dumps(await client.get_profile(), indent=2))
        elif args.command == "recovery":
            print(json.dumps(await client.get_recovery(start=start), indent=2))
        elif args.command == "workouts":
            records = await client.get_all("/activity/workout", {"limit": 25, "start": start.strftime("%Y-%m-%dT%H:%M:%S.000Z")})
            for w in map(summarize_workout, records):
                when = f"{w.start_time:%Y-%m-%d %H:%M}" if w.start_time else "?"
                print(f"{when}  {w.sport:<20} strain {w.strain}  {w.duration} min  {w.calories} kcal  HR {w.avg_hr}/{w.max_hr}")
        elif args.command == "import":
            counts = await import_biometrics(client, days=days)
            print(", ".join(f"{k}: {v}" for k, v in counts.items()))
    except WhoopError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
