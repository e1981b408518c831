"""Maintenance commands: run the dev server, create tables, send nudges, repair streaks."""
import argparse
import logging
import sys

from ecotrack.app import build_services, create_app
from ecotrack.config import Config
from ecotrack.models.user import User
from ecotrack.services.mailer import ResendMailer


def _config_dict() -> dict:
    return {name: getattr(Config, name) for name in dir(Config) if name.isupper()}


def _cmd_run(args: argparse.Namespace) -> None:
    app = create_app()
    app.run(host=args.host, port=args.port, debug=Config.DEBUG)


def _cmd_init_db(args: argparse.Namespace) -> None:
    services = build_services(_config_dict())
    print(f"Tables ready on {services.database.engine.dialect.name}")


def _cmd_send_nudges(args: argparse.Namespace) -> None:
    services = build_services(_config_dict())
    if not args.dry_run:
        services.nudges.send_email = ResendMailer.from_config(Config).send
    summary = services.nudges.send_nudges(dry_run=args.dry_run)
    print(
        f"{summary['day']}: {summary['candidates']} candidates, "
        f"{summary['sent']} sent, {summary['failed']} failed"
    )
    if summary["failed"]:
        sys.exit(1)


def _cmd_reconcile_streaks(args: argparse.Namespace) -> None:
    services = build_services(_config_dict())
    if args.user_id is not None:
        user_ids = [args.user_id]
    else:
        with services.database.session_scope() as session:
            user_ids = [row.id for row in session.query(User.id).order_by(User.id)]
    total = 0
    for user_id in user_ids:
        corrected = services.ledger.reconcile(user_id)
        if corrected:
            print(f"user {user_id}: corrected {corrected} day(s)")
        total += corrected
    print(f"Reconciled {len(user_ids)} user(s), {total} correction(s)")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="EcoTrack maintenance commands")
    sub = p.add_subparsers(dest="cmd", required=True)

    run = sub.add_parser("run", help="Start the development server")
    run.add_argument("--host", default="127.0.0.1")
    run.add_argument("--port", type=int, default=3001)
    run.set_defaults(func=_cmd_run)

    sub.add_parser("init-db", help="Create tables (idempotent)").set_defaults(func=_cmd_init_db)

    nudge = sub.add_parser("send-nudges", help="Email users who have not checked in today")
    nudge.add_argument("--dry-run", action="store_true", help="List recipients without sending")
    nudge.set_defaults(func=_cmd_send_nudges)

    reconcile = sub.add_parser("reconcile-streaks", help="Repair stored streaks that break the day chain")
    reconcile.add_argument("--user-id", type=int, default=None)
    reconcile.set_defaults(func=_cmd_reconcile_streaks)
    return p


def main(argv=None) -> None:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(message)s')
    args = _build_parser().parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
