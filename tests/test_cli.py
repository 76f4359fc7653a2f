"""Tests for the ship-health command line."""

import argparse
import csv
import json
import os

import pytest

from ship_health.cli import main, parse_timestamp

CONFIG_DIR = os.path.join(os.path.dirname(__file__), "..", "config")


@pytest.fixture
def db(tmp_path):
    return str(tmp_path / "cli.db")


@pytest.fixture
def simulated_db(db, capsys):
    assert main(["simulate", "--db", db, "--equipment", "pump-1", "--days", "3", "--seed", "1"]) == 0
    assert main(["simulate", "--db", db, "--equipment", "gen-1", "--days", "3", "--seed", "2",
                 "--fault", "electrical", "--status", "warning"]) == 0
    capsys.readouterr()
    return db


def test_parse_timestamp(now):
    assert parse_timestamp("2024-06-01T12:00:00Z") == now
    assert parse_timestamp("2024-06-01T12:00:00") == now
    assert parse_timestamp("2024-06-01T14:00:00+02:00") == now
    with pytest.raises(argparse.ArgumentTypeError):
        parse_timestamp("yesterday")


def test_init_db(db, capsys):
    assert main(["init-db", "--db", db]) == 0
    assert os.path.exists(db)
    assert db in capsys.readouterr().out


def test_simulate_reports_counts(db, capsys):
    assert main(["simulate", "--db", db, "--equipment", "pump-1", "--days", "1"]) == 0
    out = capsys.readouterr().out
    assert "Equipment pump-1: 168 readings" in out
    assert "estimated RUL" in out


def test_assess_json(simulated_db, capsys):
    assert main(["assess", "--db", simulated_db, "--equipment", "pump-1", "--json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert len(payload) == 1
    assert payload[0]["equipment_id"] == "pump-1"
    assert 0.0 <= payload[0]["soh"]["soh"] <= 100.0
    assert payload[0]["uptime"]["uptime_rate"] == 90.0
    assert payload[0]["health_score"]["uptime_score"] == 90.0


def test_assess_all_writes_csv(simulated_db, tmp_path, capsys):
    output = str(tmp_path / "report.csv")
    assert main(["assess", "--db", simulated_db, "--all", "--output", output]) == 0
    out = capsys.readouterr().out
    assert "Equipment gen-1" in out
    assert "Fleet summary:" in out

    with open(output, newline="") as f:
        rows = list(csv.DictReader(f))
    assert [r["equipment_id"] for r in rows] == ["gen-1", "pump-1"]
    assert rows[0]["uptime_rate"] == "70.0"


def test_assess_explicit_window_without_data(simulated_db):
    argv = ["assess", "--db", simulated_db, "--equipment", "pump-1",
            "--start", "2000-01-01T00:00:00Z", "--end", "2000-01-02T00:00:00Z"]
    assert main(argv) == 2


def test_assess_unknown_equipment(simulated_db):
    assert main(["assess", "--db", simulated_db, "--equipment", "pump-9"]) == 2


def test_assess_empty_database(db):
    main(["init-db", "--db", db])
    assert main(["assess", "--db", db, "--all"]) == 2


def test_config_file(db):
    assert main(["--config", os.path.join(CONFIG_DIR, "strict.yaml"), "init-db", "--db", db]) == 0


def test_missing_config_file(db):
    with pytest.raises(SystemExit) as excinfo:
        main(["--config", os.path.join(CONFIG_DIR, "absent.yaml"), "init-db", "--db", db])
    assert excinfo.value.code == 2


def test_subcommand_required():
    with pytest.raises(SystemExit):
        main([])
