"""Operator utilities for accounts, sessions and rating statistics."""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from contextlib import suppress

from profrate.db import database, models
from profrate.db.repositories import ratings as ratings_repo
from profrate.db.repositories import sessions as sessions_repo
from profrate.db.repositories import stats as stats_repo
from profrate.db.repositories import users as users_repo
from profrate.utils.passwords import check_password_strength, hash_password
from profrate.utils.validation import normalize_username, username_error


logger = logging.getLogger("profrate.scripts.manage_accounts")


# Access SessionLocal dynamically so test fixtures that rebind the
# sessionmaker are respected.
SessionLocal = lambda: database.SessionLocal()


def _resolve_user(session, identifier: str):
    return users_repo.get_user_by_login(session, identifier)


def _read_password(args: argparse.Namespace) -> str:
    if args.password:
        return args.password
    return getpass.getpass("New password: ")


def cmd_verify_admins(session, args: argparse.Namespace) -> int:
    admins = users_repo.get_users_by_role(session, models.ROLE_ADMIN)
    if not admins:
        print("No admin users found.")
        return 0
    for admin in admins:
        if admin.email_verified:
            print(f"{admin.username}: already verified")
            continue
        users_repo.mark_email_verified(session, admin)
        print(f"{admin.username}: marked verified")
    return 0


def cmd_reset_password(session, args: argparse.Namespace) -> int:
    user = _resolve_user(session, args.user)
    if user is None:
        print(f"User not found: {args.user}", file=sys.stderr)
        return 1
    password = _read_password(args)
    strength = check_password_strength(password)
    if not strength.valid:
        print("Password rejected: " + "; ".join(strength.feedback), file=sys.stderr)
        return 1
    users_repo.set_password_hash(session, user, hash_password(password))
    removed = sessions_repo.destroy_user_sessions(session, user.id)
    print(f"Password reset for {user.username}; {removed} session(s) revoked.")
    return 0


def cmd_delete_user(session, args: argparse.Namespace) -> int:
    user = _resolve_user(session, args.user)
    if user is None:
        print(f"User not found: {args.user}", file=sys.stderr)
        return 1
    if not args.yes:
        print(f"Refusing to delete {user.username} without --yes", file=sys.stderr)
        return 1
    username = user.username
    sessions_repo.destroy_user_sessions(session, user.id)
    users_repo.delete_user(session, user.id)
    print(f"Deleted user {username}.")
    return 0


def cmd_create_user(session, args: argparse.Namespace) -> int:
    username = normalize_username(args.username)
    problem = username_error(username)
    if problem:
        print(problem, file=sys.stderr)
        return 1
    if users_repo.get_user_by_username(session, username):
        print(f"Username already exists: {username}", file=sys.stderr)
        return 1
    if args.email and users_repo.get_user_by_email(session, args.email):
        print(f"Email already registered: {args.email}", file=sys.stderr)
        return 1
    password = _read_password(args)
    strength = check_password_strength(password)
    if not strength.valid:
        print("Password rejected: " + "; ".join(strength.feedback), file=sys.stderr)
        return 1
    user = users_repo.create_user(
        session,
        username=username,
        password_hash=hash_password(password),
        role=args.role,
        email=args.email,
        email_verified=bool(args.verified),
    )
    print(f"Created {user.role} {user.username} ({user.id}).")
    return 0


def cmd_diagnose_user(session, args: argparse.Namespace) -> int:
    user = _resolve_user(session, args.user)
    if user is None:
        print(f"User not found: {args.user}")
        print(f"Total users in database: {len(users_repo.get_users(session))}")
        return 1
    live_sessions = [
        row for row in session.query(models.UserSession).all()
        if (row.sess or {}).get("user_id") == str(user.id)
        and models.as_utc(row.expire) > models.now_utc()
    ]
    print(f"ID:             {user.id}")
    print(f"Username:       {user.username}")
    print(f"Email:          {user.email or '-'}")
    print(f"Role:           {user.role}")
    print(f"Email verified: {user.email_verified}")
    print(f"Password hash:  {user.password_hash.split('$')[1] if user.password_hash.startswith('$') else 'legacy sha256'}")
    print(f"Reset pending:  {bool(user.reset_token_hash)}")
    print(f"Live sessions:  {len(live_sessions)}")
    print(f"Created:        {user.created_at}")
    return 0


def cmd_diagnose_stats(session, args: argparse.Namespace) -> int:
    stats = stats_repo.get_stats(session)
    for key, value in stats.items():
        print(f"{key}: {value}")

    # Cross-check stored aggregates against the reviews they summarize
    drift = 0
    for doctor in session.query(models.Doctor).order_by(models.Doctor.id).all():
        expected = ratings_repo.aggregate_reviews(session, doctor.id)
        stored = doctor.ratings
        stored_total = stored.total_reviews if stored else 0
        if stored_total != expected["total_reviews"]:
            drift += 1
            print(f"doctor {doctor.id} ({doctor.name}): stored total {stored_total}, actual {expected['total_reviews']}")
            if args.fix:
                ratings_repo.recompute_doctor_rating(session, doctor.id)
                session.commit()
    if drift == 0:
        print("All rating aggregates match their reviews.")
    elif args.fix:
        print(f"Recomputed {drift} rating aggregate(s).")
    return 0


def cmd_prune_sessions(session, args: argparse.Namespace) -> int:
    removed = sessions_repo.prune_expired_sessions(session)
    print(f"Removed {removed} expired session(s).")
    return 0


COMMANDS = {
    "verify-admins": cmd_verify_admins,
    "reset-password": cmd_reset_password,
    "delete-user": cmd_delete_user,
    "create-user": cmd_create_user,
    "diagnose-user": cmd_diagnose_user,
    "diagnose-stats": cmd_diagnose_stats,
    "prune-sessions": cmd_prune_sessions,
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="ProfRate account maintenance")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("verify-admins", help="Mark every admin account's email as verified")

    p = sub.add_parser("reset-password", help="Set a new password and revoke the user's sessions")
    p.add_argument("user", help="Username or email")
    p.add_argument("--password", help="New password (prompted when omitted)")

    p = sub.add_parser("delete-user", help="Delete an account and its sessions")
    p.add_argument("user", help="Username or email")
    p.add_argument("--yes", action="store_true", help="Confirm deletion")

    p = sub.add_parser("create-user", help="Create an account directly")
    p.add_argument("username")
    p.add_argument("--email")
    p.add_argument("--role", choices=models.ALL_ROLES, default=models.ROLE_STUDENT)
    p.add_argument("--password", help="Password (prompted when omitted)")
    p.add_argument("--verified", action="store_true", help="Mark the email as verified")

    p = sub.add_parser("diagnose-user", help="Print account details useful for login support")
    p.add_argument("user", help="Username or email")

    p = sub.add_parser("diagnose-stats", help="Print dashboard stats and check rating aggregates")
    p.add_argument("--fix", action="store_true", help="Recompute aggregates that drifted")

    sub.add_parser("prune-sessions", help="Delete expired sessions")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)
    database.ensure_sqlite_schema()
    session = SessionLocal()
    try:
        logger.info("manage_accounts command=%s", args.command)
        return COMMANDS[args.command](session, args)
    finally:
        with suppress(Exception):
            session.close()


if __name__ == "__main__":  # pragma: no cover - manual execution path
    sys.exit(main())
