"""Tests for CLI functions.

Covers funding parsing, engine start-up and resumption, and the offline
simulate and compare commands.
"""

from __future__ import annotations

import json
import re
from pathlib import Path

import pytest

from anti_geyser.__main__ import build_parser, main, open_engine, parse_funding
from anti_geyser.types import Uint64, to_wad

SCENARIOS = Path(__file__).parents[2] / "scenarios"

PROGRAM = """\
epochLength: 86400
rewardPerEpoch: "100"
totalEpochs: 5
startTime: 4102444800
"""


@pytest.fixture
def program_file(tmp_path: Path) -> Path:
    """A program that starts far in the future."""
    path = tmp_path / "program.yaml"
    path.write_text(PROGRAM, encoding="utf-8")
    return path


class TestParseFunding:
    """Tests for `--fund PARTICIPANT=TOKENS` parsing."""

    def test_parses_and_sums_grants(self) -> None:
        """Repeated participants accumulate their grants."""
        grants = parse_funding(["alice=10", "bob=2.5", "alice=5"])

        assert grants == {"alice": to_wad("15"), "bob": to_wad("2.5")}

    def test_empty(self) -> None:
        """No entries, no grants."""
        assert parse_funding([]) == {}

    @pytest.mark.parametrize("entry", ["alice", "=5", "alice=", "alice=ten", "alice=-1"])
    def test_malformed_entries(self, entry: str) -> None:
        """Entries without a participant or a decimal amount are rejected."""
        with pytest.raises(ValueError):
            parse_funding([entry])


class TestBuildParser:
    """Tests for argument parsing."""

    def test_serve_defaults(self, program_file: Path) -> None:
        """Serve binds to port 8545 with no database by default."""
        args = build_parser().parse_args(["serve", "--program", str(program_file)])

        assert args.port == 8545
        assert args.host == "0.0.0.0"
        assert args.db is None
        assert args.fund == []
        assert args.start_now is False

    def test_command_required(self) -> None:
        """Running without a command is a usage error."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_logging_flags_on_every_command(self) -> None:
        """Verbose and no-color flags are shared by the subcommands."""
        args = build_parser().parse_args(["compare", "a.yaml", "-v", "--no-color"])

        assert args.verbose is True
        assert args.no_color is True
        assert args.scenarios == [Path("a.yaml")]

    def test_usage_names_shipped_scenarios(self) -> None:
        """Scenario files quoted in the usage text exist."""
        epilog = build_parser().epilog
        assert epilog is not None

        names = re.findall(r"scenarios/([\w.]+\.yaml)", epilog)
        assert names
        for name in names:
            assert (SCENARIOS / name).is_file(), name


class TestOpenEngine:
    """Tests for serve start-up."""

    def test_new_program_is_funded(self, program_file: Path) -> None:
        """A new program gets its reward budget and participant grants."""
        engine, database = open_engine(program_file, None, False, {"alice": to_wad("50")})

        assert database is None
        assert engine.reward_token.balance_of(engine.account) == to_wad("500")
        assert engine.stake_token.balance_of("alice") == to_wad("50")
        assert engine.config.start_time == Uint64(4102444800)

    def test_start_now(self, program_file: Path) -> None:
        """--start-now moves epoch 0 to the current time."""
        engine, _ = open_engine(program_file, None, True, {})

        assert int(engine.config.start_time) < 4102444800
        assert not engine.clock.has_ended()

    def test_resumes_from_database(self, program_file: Path, tmp_path: Path) -> None:
        """A second start resumes the stored program and refunds live stakes."""
        db_path = tmp_path / "anti_geyser.db"
        engine, database = open_engine(program_file, db_path, False, {"alice": to_wad("50")})
        engine.stake("alice", to_wad("20"))
        assert database is not None
        database.close()

        resumed, database = open_engine(program_file, db_path, False, {})
        assert database is not None
        try:
            view = resumed.get_position("alice")
            assert view is not None
            assert view.amount == to_wad("20")
            assert resumed.stake_token.balance_of(resumed.account) == to_wad("20")

            # Staked tokens can be withdrawn after the restart.
            resumed.withdraw("alice", to_wad("20"))
            assert resumed.stake_token.balance_of("alice") == to_wad("20")
        finally:
            database.close()

    def test_missing_program_file(self, tmp_path: Path) -> None:
        """A missing program file raises OSError."""
        with pytest.raises(OSError):
            open_engine(tmp_path / "missing.yaml", None, False, {})


class TestSimulateCommand:
    """Tests for `simulate`."""

    def test_prints_report(self, capsys: pytest.CaptureFixture[str]) -> None:
        """The report goes to stdout."""
        assert main(["simulate", str(SCENARIOS / "sample.yaml")]) == 0

        out = capsys.readouterr().out
        assert "ANTI-GEYSER SIMULATION: Anti-Farm Demo" in out
        assert "ANTI-FARM EFFECTIVENESS SCORE" in out

    def test_writes_results(self, tmp_path: Path) -> None:
        """--output writes per-epoch results as JSON."""
        output = tmp_path / "results.json"
        assert main(["simulate", str(SCENARIOS / "sample.yaml"), "--output", str(output)]) == 0

        data = json.loads(output.read_text(encoding="utf-8"))
        assert len(data) == 10
        assert data[-1]["actors"]["Farmer"]["staked"] == "0"

    def test_missing_scenario(self, tmp_path: Path) -> None:
        """A missing scenario file exits with status 1."""
        assert main(["simulate", str(tmp_path / "missing.yaml")]) == 1

    def test_invalid_scenario(self, tmp_path: Path) -> None:
        """A scenario that fails validation exits with status 1."""
        path = tmp_path / "bad.yaml"
        path.write_text("actors: []\n", encoding="utf-8")

        assert main(["simulate", str(path)]) == 1

    def test_rejected_scenario(self, tmp_path: Path) -> None:
        """A scenario whose actions the engine rejects exits with status 1."""
        path = tmp_path / "overdraw.yaml"
        path.write_text(
            "program: {epochs: 3}\n"
            "actors:\n"
            "  - name: alice\n"
            "    deposits: [{epoch: 0, amount: 1}]\n"
            "    withdraws: [{epoch: 1, amount: 2}]\n",
            encoding="utf-8",
        )

        assert main(["simulate", str(path)]) == 1


class TestCompareCommand:
    """Tests for `compare`."""

    def test_compares_scenarios(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Every scenario gets a row in the comparison."""
        paths = [str(SCENARIOS / "sample.yaml"), str(SCENARIOS / "serial_farmers.yaml")]
        assert main(["compare", *paths]) == 0

        out = capsys.readouterr().out
        assert "ANTI-GEYSER SCENARIO COMPARISON" in out
        assert "Anti-Farm Demo" in out
        assert "Serial Farmers" in out

    def test_partial_failure(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Loadable scenarios are still compared, but the exit status is 1."""
        paths = [str(SCENARIOS / "sample.yaml"), str(tmp_path / "missing.yaml")]
        assert main(["compare", *paths]) == 1

        assert "Anti-Farm Demo" in capsys.readouterr().out

    def test_all_fail(self, tmp_path: Path) -> None:
        """Nothing to compare exits with status 1."""
        assert main(["compare", str(tmp_path / "missing.yaml")]) == 1
