"""Tests for the band governance CLI — proves commands dispatch to the service."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator

import pytest

from bandgov.cli import build_parser, main


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    logging.getLogger().handlers.clear()


class TestCLIParsing:
    def test_init_band(self) -> None:
        args = build_parser().parse_args([
            "--user", "alice", "init-band", "--name", "Owls", "--slug", "owls", "--quorum", "40",
        ])
        assert args.command == "init-band"
        assert args.user == "alice"
        assert args.quorum == 40.0

    def test_vote_choice_restricted(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([
                "vote", "--band", "b", "--proposal", "p", "--choice", "maybe",
            ])

    def test_review_actions(self) -> None:
        args = build_parser().parse_args([
            "review", "--band", "b", "--proposal", "p", "--action", "request_changes",
        ])
        assert args.action == "request_changes"


class TestCLIExecution:
    def _run(self, db: Path, capsys: pytest.CaptureFixture[str], *argv: str) -> dict:
        code = main(["--db", str(db), *argv])
        out = capsys.readouterr().out
        assert code == 0, out
        return json.loads(out)

    def test_no_command_shows_help(self) -> None:
        assert main([]) == 0

    def test_band_and_proposal_flow(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        db = tmp_path / "cli.sqlite3"
        band = self._run(db, capsys, "--user", "alice", "init-band", "--name", "Owls", "--slug", "owls")
        band_id = band["band"]["band_id"]

        added = self._run(
            db, capsys, "--user", "alice", "add-member", "--band", band_id,
            "--member-user", "bob", "--member-email", "bob@x.org",
        )
        assert added["member"]["status"] == "pending"
        joined = self._run(db, capsys, "--user", "bob", "activate-member", "--band", band_id)
        assert joined["member"]["status"] == "active"

        created = self._run(
            db, capsys, "--user", "bob", "create-proposal", "--band", band_id,
            "--title", "Van", "--objective", "Transport", "--description", "A van",
            "--rationale", "Cheaper", "--success-criteria", "Van bought",
        )
        pid = created["proposal"]["proposal_id"]
        self._run(db, capsys, "--user", "bob", "submit", "--band", band_id, "--proposal", pid)
        reviewed = self._run(
            db, capsys, "--user", "alice", "review", "--band", band_id,
            "--proposal", pid, "--action", "approve",
        )
        assert reviewed["proposal"]["state"] == "voting"
        voted = self._run(
            db, capsys, "--user", "bob", "vote", "--band", band_id,
            "--proposal", pid, "--choice", "approve",
        )
        assert voted["counters"]["votes_approve"] == 1

        listed = self._run(db, capsys, "--user", "alice", "list", "--band", band_id, "--state", "voting")
        assert [p["proposal_id"] for p in listed["proposals"]] == [pid]
        log = self._run(db, capsys, "--user", "alice", "log", "--band", band_id, "--entity-type", "proposal")
        assert log["entries"][0]["action"] == "vote"

    def test_failure_exit_code(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["--db", str(tmp_path / "cli.sqlite3"), "list", "--band", "band_missing"])
        assert code == 1
        assert "AUTHENTICATION_ERROR" in capsys.readouterr().err

    def test_finalize_too_early(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        db = tmp_path / "cli.sqlite3"
        band = self._run(db, capsys, "--user", "alice", "init-band", "--name", "Owls", "--slug", "owls")
        code = main([
            "--db", str(db), "--user", "alice", "finalize",
            "--band", band["band"]["band_id"], "--proposal", "prop_missing",
        ])
        assert code == 1
        assert "NOT_FOUND_ERROR" in capsys.readouterr().err
