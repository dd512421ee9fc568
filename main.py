#!/usr/bin/env python3
"""
budget-tracker -- command-line client for the Budget Tracker API.

Usage:
  budget-tracker login admin@example.com
  budget-tracker login admin@example.com --password secret123
  budget-tracker whoami
  budget-tracker summary
  budget-tracker commitments --type capital_fund
  budget-tracker commitments --status obligated
  budget-tracker commitments --type capital_fund --status obligated
  budget-tracker expenditures --type traditional_hap
  budget-tracker logout

Environment variables:
  BUDGET_API_URL       API base URL (default: http://localhost:5001/api)
  BUDGET_SESSION_FILE  Where the session token is kept
                       (default: ~/.budget-tracker/session.json)
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

import requests

from budget.models import COMMITMENT_STATUSES, COMMITMENT_TYPES, EXPENDITURE_TYPES
from client.api import BudgetClient
from client.session import FileSessionStore
from core.config import get_client_settings

SESSION_EXPIRED = "Session expired. Run `budget-tracker login` to sign in again."


def _prompt_login(path: str) -> None:
    print(f"  [!] {SESSION_EXPIRED}", file=sys.stderr)


def _ignore_navigation(path: str) -> None:
    pass


def _make_client(navigate=_prompt_login) -> BudgetClient:
    settings = get_client_settings()
    return BudgetClient(FileSessionStore(settings.session_file), navigate, base_url=settings.api_url)


def _error_message(exc: requests.HTTPError) -> str:
    """Pull the server's error message out of the JSON envelope if there is one."""
    response = exc.response
    if response is None:
        return str(exc)
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return f"HTTP {response.status_code}"


def _money(value: float) -> str:
    return f"${value:,.2f}"


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_login(args: argparse.Namespace) -> None:
    # A rejected login is a 401 like any other; the session reset it triggers
    # is silent here because the user is already signing in.
    client = _make_client(navigate=_ignore_navigation)
    password = args.password or getpass.getpass("Password: ")
    user = client.login(args.email, password)
    print(f"Logged in as {user['first_name']} {user['last_name']} <{user['email']}> ({user['role']})")


def cmd_logout(args: argparse.Namespace) -> None:
    _make_client().logout()
    print("Logged out.")


def cmd_whoami(args: argparse.Namespace) -> None:
    client = _make_client()
    if not client.is_authenticated:
        print("Not logged in.")
        return
    user = client.profile()
    print(f"{user['first_name']} {user['last_name']} <{user['email']}>")
    print(f"  role:       {user['role']}")
    print(f"  last login: {user.get('last_login') or 'never'}")


def cmd_summary(args: argparse.Namespace) -> None:
    summary = _make_client().dashboard_summary()
    ba = summary["budget_authority"]
    commitments = summary["commitments"]
    print(f"\nBudget Authority FY{ba['fiscal_year']}")
    print("─" * 40)
    print(f"  Total budget:      {_money(ba['total_budget_amount'])}")
    print(f"  Committed:         {_money(commitments['total'])}")
    print(f"    obligated:       {_money(commitments['obligated'])}")
    print(f"    expended:        {_money(commitments['expended'])}")
    print(f"    pending:         {_money(commitments['pending'])}")
    print(f"  YTD expenditures:  {_money(summary['ytd_expenditures'])}")
    print(f"  Available:         {_money(summary['available_budget'])}")
    reserve = summary.get("mtw_reserve")
    if reserve:
        print(f"  MTW reserve:       {_money(reserve['amount'])} ({reserve['percentage']}%) as of {reserve['as_of_date']}")
    print()


def cmd_commitments(args: argparse.Namespace) -> None:
    rows = _make_client().list_commitments(commitment_type=args.type, status=args.status)
    if not rows:
        print("No commitments found.")
        return
    for c in rows:
        print(
            f"  {c['commitment_number']:<14} {c['status']:<18} {_money(c['amount_committed']):>16}  "
            f"{c['activity_description']}"
        )


def cmd_expenditures(args: argparse.Namespace) -> None:
    rows = _make_client().list_expenditures(expenditure_type=args.type)
    if not rows:
        print("No expenditures found.")
        return
    for e in rows:
        print(f"  {e['expenditure_date']}  {e['expenditure_type']:<22} {_money(e['amount']):>14}  {e.get('description') or ''}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="budget-tracker",
        description="Command-line client for the Budget Tracker API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  budget-tracker login admin@example.com
  budget-tracker summary
  budget-tracker commitments --status planned
  BUDGET_API_URL=https://budget.example.org/api budget-tracker whoami
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log HTTP session events to stderr")
    sub = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    login = sub.add_parser("login", help="Sign in and store a session token")
    login.add_argument("email", help="Account email address")
    login.add_argument("--password", help="Password (prompted for if omitted)")
    login.set_defaults(func=cmd_login)

    sub.add_parser("logout", help="Forget the stored session").set_defaults(func=cmd_logout)
    sub.add_parser("whoami", help="Show the signed-in user").set_defaults(func=cmd_whoami)
    sub.add_parser("summary", help="Show the dashboard budget summary").set_defaults(func=cmd_summary)

    commitments = sub.add_parser("commitments", help="List commitments")
    commitments.add_argument("--type", choices=COMMITMENT_TYPES, metavar="TYPE", help="Filter by commitment type")
    commitments.add_argument("--status", choices=COMMITMENT_STATUSES, metavar="STATUS", help="Filter by status")
    commitments.set_defaults(func=cmd_commitments)

    expenditures = sub.add_parser("expenditures", help="List HAP expenditures")
    expenditures.add_argument("--type", choices=EXPENDITURE_TYPES, metavar="TYPE", help="Filter by expenditure type")
    expenditures.set_defaults(func=cmd_expenditures)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.ERROR,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    try:
        args.func(args)
    except requests.HTTPError as exc:
        print(f"  [!] {_error_message(exc)}", file=sys.stderr)
        return 1
    except requests.RequestException as exc:
        print(f"  [!] Could not reach the API: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
