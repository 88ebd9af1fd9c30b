"""Band governance CLI — command-line interface over the governance service.

Usage:
    python -m bandgov.cli --user alice init-band --name "The Rust Belt" --slug rust-belt
    python -m bandgov.cli --user alice add-member --band B --member-user bob --email bob@x.org
    python -m bandgov.cli --user alice activate-member --band B --member-id M
    python -m bandgov.cli --user alice create-proposal --band B --title "New van" ...
    python -m bandgov.cli --user alice submit --band B --proposal P
    python -m bandgov.cli --user alice review --band B --proposal P --action approve
    python -m bandgov.cli --user bob vote --band B --proposal P --choice approve
    python -m bandgov.cli --user alice finalize --band B --proposal P
    python -m bandgov.cli --user alice log --band B --entity-type proposal

Identity issuance is external to this tool: ``--user`` names the caller
and is trusted as already authenticated.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from bandgov.config import DEFAULT_CONFIG_DIR, GovernanceConfig
from bandgov.errors import GovernanceError
from bandgov.identity import Identity
from bandgov.models.proposal import ProposalState, ReviewAction, VoteChoice
from bandgov.persistence.store import GovernanceStore
from bandgov.service import BandGovernanceService, ServiceResult
from bandgov.telemetry import setup_logging


def _make_service(args: argparse.Namespace) -> BandGovernanceService:
    """Create a service over the configured SQLite store."""
    config = GovernanceConfig.load(args.config)
    setup_logging(config.log_level, config.log_format)
    db_path = Path(args.db) if args.db else Path(config.db_path)
    return BandGovernanceService(config, store=GovernanceStore(db_path))


def _caller(args: argparse.Namespace) -> Optional[Identity]:
    if not args.user:
        return None
    return Identity(user_id=args.user, email=args.email or "")


def _emit(result: ServiceResult) -> int:
    if result.success:
        print(json.dumps(result.data, indent=2, default=str))
        return 0
    print(
        f"Failed ({result.error_kind}): {'; '.join(result.errors)}",
        file=sys.stderr,
    )
    return 1


def cmd_init_band(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _emit(service.create_band(
        _caller(args), args.name, args.slug,
        quorum_percentage=args.quorum,
        approval_threshold=args.approval,
        voting_period_hours=args.voting_hours,
        display_name=args.display_name or "",
    ))


def cmd_add_member(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _emit(service.add_member(
        _caller(args), args.band, args.member_user, args.member_email, args.role,
    ))


def cmd_activate_member(args: argparse.Namespace) -> int:
    service = _make_service(args)
    if args.member_id:
        return _emit(service.set_member_status(_caller(args), args.band, args.member_id, "active"))
    return _emit(service.accept_invitation(_caller(args), args.band))


def cmd_create_proposal(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _emit(service.create_proposal(
        _caller(args), args.band,
        title=args.title,
        objective=args.objective,
        description=args.description,
        rationale=args.rationale,
        success_criteria=args.success_criteria,
        financial_request=args.financial_request,
        budget_breakdown=args.budget_breakdown,
        voting_period_hours=args.voting_hours,
    ))


def cmd_submit(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _emit(service.submit_proposal(_caller(args), args.band, args.proposal))


def cmd_resubmit(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _emit(service.resubmit_proposal(_caller(args), args.band, args.proposal))


def cmd_review(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _emit(service.review_proposal(
        _caller(args), args.band, args.proposal, args.action, args.feedback,
    ))


def cmd_vote(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _emit(service.cast_vote(
        _caller(args), args.band, args.proposal, args.choice, args.comment,
    ))


def cmd_finalize(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _emit(service.finalize_proposal(_caller(args), args.band, args.proposal))


def cmd_show(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _emit(service.get_proposal(_caller(args), args.band, args.proposal))


def cmd_list(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _emit(service.list_proposals(_caller(args), args.band, args.state))


def cmd_log(args: argparse.Namespace) -> int:
    service = _make_service(args)
    return _emit(service.list_activity(
        _caller(args), args.band,
        entity_type=args.entity_type,
        actor_id=args.actor,
        limit=args.limit,
        offset=args.offset,
    ))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bandgov",
        description="Band governance — proposals, review and voting",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_DIR,
        help="Path to config directory (default: config/)",
    )
    parser.add_argument("--db", help="SQLite database path (overrides config db_path)")
    parser.add_argument("--user", help="Caller user ID")
    parser.add_argument("--email", help="Caller email")
    sub = parser.add_subparsers(dest="command")

    # init-band
    p_band = sub.add_parser("init-band", help="Create a band with the caller as founder")
    p_band.add_argument("--name", required=True, help="Band name")
    p_band.add_argument("--slug", required=True, help="Unique slug (lowercase, hyphens)")
    p_band.add_argument("--quorum", type=float, help="Quorum percentage (default from config)")
    p_band.add_argument("--approval", type=float, help="Approval threshold percentage")
    p_band.add_argument("--voting-hours", type=float, help="Default voting period in hours")
    p_band.add_argument("--display-name", help="Founder display name")

    # add-member
    p_add = sub.add_parser("add-member", help="Invite a user as a pending member")
    p_add.add_argument("--band", required=True, help="Band ID")
    p_add.add_argument("--member-user", required=True, help="User ID to invite")
    p_add.add_argument("--member-email", default="", help="Invitee email")
    p_add.add_argument("--role", default="member", help="Role (default: member)")

    # activate-member
    p_act = sub.add_parser(
        "activate-member",
        help="Activate a pending member (or accept your own invitation)",
    )
    p_act.add_argument("--band", required=True, help="Band ID")
    p_act.add_argument("--member-id", help="Member ID (omit to accept your own invitation)")

    # create-proposal
    p_prop = sub.add_parser("create-proposal", help="Create a draft proposal")
    p_prop.add_argument("--band", required=True, help="Band ID")
    p_prop.add_argument("--title", required=True)
    p_prop.add_argument("--objective", required=True)
    p_prop.add_argument("--description", required=True)
    p_prop.add_argument("--rationale", required=True)
    p_prop.add_argument("--success-criteria", required=True)
    p_prop.add_argument("--financial-request")
    p_prop.add_argument("--budget-breakdown")
    p_prop.add_argument("--voting-hours", type=float, help="Voting period override in hours")

    for name, help_text in (
        ("submit", "Submit a draft for review"),
        ("resubmit", "Resubmit a proposal after revision"),
        ("finalize", "Finalize a proposal whose voting period has ended"),
        ("show", "Show a proposal with its votes and versions"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--band", required=True, help="Band ID")
        p.add_argument("--proposal", required=True, help="Proposal ID")

    # review
    p_rev = sub.add_parser("review", help="Approve for voting or request changes")
    p_rev.add_argument("--band", required=True, help="Band ID")
    p_rev.add_argument("--proposal", required=True, help="Proposal ID")
    p_rev.add_argument("--action", required=True, choices=[a.value for a in ReviewAction])
    p_rev.add_argument("--feedback", help="Reviewer feedback")

    # vote
    p_vote = sub.add_parser("vote", help="Cast or change your vote")
    p_vote.add_argument("--band", required=True, help="Band ID")
    p_vote.add_argument("--proposal", required=True, help="Proposal ID")
    p_vote.add_argument("--choice", required=True, choices=[c.value for c in VoteChoice])
    p_vote.add_argument("--comment", help="Optional comment")

    # list
    p_list = sub.add_parser("list", help="List proposals, newest first")
    p_list.add_argument("--band", required=True, help="Band ID")
    p_list.add_argument("--state", choices=[s.value for s in ProposalState])

    # log
    p_log = sub.add_parser("log", help="Show the band's activity log, newest first")
    p_log.add_argument("--band", required=True, help="Band ID")
    p_log.add_argument("--entity-type", help="Filter by entity type")
    p_log.add_argument("--actor", help="Filter by actor member ID")
    p_log.add_argument("--limit", type=int, help="Page size")
    p_log.add_argument("--offset", type=int, default=0, help="Page offset")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "init-band": cmd_init_band,
        "add-member": cmd_add_member,
        "activate-member": cmd_activate_member,
        "create-proposal": cmd_create_proposal,
        "submit": cmd_submit,
        "resubmit": cmd_resubmit,
        "review": cmd_review,
        "vote": cmd_vote,
        "finalize": cmd_finalize,
        "show": cmd_show,
        "list": cmd_list,
        "log": cmd_log,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        return handler(args)
    except GovernanceError as e:
        print(f"Failed ({e.kind}): {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
