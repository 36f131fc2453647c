# tenancy/cli/__main__.py
from __future__ import annotations

import argparse
import json

from tenancy.db import init_db
from tenancy.logging_config import configure_logging
from tenancy.workers.renewal_tasks import sweep


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(prog="tenancy")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="create missing tables")

    renew = sub.add_parser("renewal-sweep", help="run one auto-renewal pass")
    renew.add_argument("--today", default=None, help="ISO date; defaults to the current UTC date")
    renew.add_argument("--dry-run", action="store_true", help="report what would change without writing")

    args = p.parse_args(argv)
    configure_logging()

    if args.command == "init-db":
        init_db()
        print(json.dumps({"ok": True}))
        return

    out = sweep(args.today, dry_run=args.dry_run)
    print(json.dumps({"ok": True, "dry_run": args.dry_run, **out}))


if __name__ == "__main__":
    main()
