"""Command line analytics runs."""

from __future__ import annotations

import json
from pathlib import Path

from scripts.compute_analytics import main

CSV = (
    "ticker,company,grantDate,quantity,vested,exercisePrice,currentPrice,status\n"
    "MSFT,Microsoft,2020-05-15,500,500,220,415.75,Vested\n"
    "AMZN,Amazon,2021-09-10,300,300,2100,185.20,Exercised\n"
)


def test_json_output(tmp_path: Path, capsys):
    path = tmp_path / "grants.csv"
    path.write_text(CSV)

    assert main(["--csv", str(path), "--as-of", "2024-06-30"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "success"
    assert payload["data"]["totals"]["totalUnrealizedPnL"] == -476565
    assert payload["data"]["meta"]["asOf"] == "2024-06-30"


def test_csv_output(tmp_path: Path, capsys):
    path = tmp_path / "grants.csv"
    path.write_text(CSV)

    assert main(["--csv", str(path), "--format", "csv", "--inflation", "0"]) == 0

    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 3
    assert lines[1].startswith("MSFT,Microsoft,Vested")


def test_invalid_file_reports_error(tmp_path: Path, capsys):
    path = tmp_path / "grants.csv"
    path.write_text("ticker,company\nMSFT,Microsoft\n")

    assert main(["--csv", str(path)]) == 1

    error = json.loads(capsys.readouterr().err)
    assert error["code"] == "CSV_HEADER_MISMATCH"


def test_json_output_reports_columns_and_projection(tmp_path: Path, capsys):
    path = tmp_path / "grants.csv"
    path.write_text(
        "ticker,company,grantDate,quantity,vested,exercisePrice,currentPrice,status,broker\n"
        "MSFT,Microsoft,2020-05-15,500,500,220,415.75,Vested,Fidelity\n"
    )

    argv = ["--csv", str(path), "--as-of", "2024-06-30", "--expected-cagr", "0.1", "--projection-years", "3"]
    assert main(argv) == 0

    data = json.loads(capsys.readouterr().out)["data"]
    assert data["meta"]["extraColumns"] == ["broker"]
    assert "vestingStartDate" in data["meta"]["missingColumns"]
    assert data["projection"]["expectedCAGR"] == 0.1
    assert [point["year"] for point in data["projection"]["series"]] == [1, 2, 3]
