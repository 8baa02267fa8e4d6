import json
from pathlib import Path

import pandas as pd
import pytest

from staffing_sim.main import main


@pytest.fixture
def input_file(tmp_path: Path, sample_text) -> Path:
    path = tmp_path / "a_example.txt"
    path.write_text(sample_text)
    return path


def test_main_writes_submission_and_reports(tmp_path: Path, input_file: Path, capsys):
    outdir = tmp_path / "output"
    main([str(input_file), "--outdir", str(outdir)])

    assert (outdir / "a_example.txt").read_text() == (
        "3\nWebServer\nBob Anna\nLogging\nAnna\nWebChat\nMaria Bob\n"
    )
    timeline = pd.read_csv(outdir / "project_timeline.csv")
    assert timeline["name"].tolist() == ["WebServer", "Logging", "WebChat"]
    skills = pd.read_csv(outdir / "contributor_skills.csv")
    anna_cpp = skills[(skills["contributor"] == "Anna") & (skills["skill"] == "C++")]
    assert anna_cpp["level"].tolist() == [4]
    assert "All projects were completed." in (outdir / "unfinished_projects.md").read_text()
    assert "Total score: 33" in capsys.readouterr().out


def test_main_dry_run_writes_nothing(tmp_path: Path, input_file: Path, capsys):
    outdir = tmp_path / "output"
    main([str(input_file), "--outdir", str(outdir), "--dry-run"])

    assert not outdir.exists()
    out = capsys.readouterr().out
    assert "- WebServer: day 0 → 7 (7 days), score 10/10; Bob, Anna" in out
    assert "Unfinished projects: none" in out


def test_main_lists_unfinished_projects(tmp_path: Path):
    path = tmp_path / "b.txt"
    path.write_text("1 1\nAnna 1\nC++ 1\nHard 2 3 0 1\nRust 4\n")
    outdir = tmp_path / "output"

    main([str(path), "--outdir", str(outdir)])

    assert (outdir / "b.txt").read_text() == "0\n"
    report = (outdir / "unfinished_projects.md").read_text()
    assert "- **Hard**" in report
    assert "Reason: never fully staffed" in report
    assert "Open Roles: Rust:4" in report


def test_main_reads_config(tmp_path: Path, input_file: Path, capsys):
    config = tmp_path / "config.json"
    config.write_text(json.dumps({"max_days": 3, "narrate": False}))

    with pytest.raises(SystemExit) as excinfo:
        main([str(input_file), "--config", str(config), "--outdir", str(tmp_path / "out")])

    assert excinfo.value.code == 1
    assert "day ceiling 3" in capsys.readouterr().err


def test_main_max_days_flag_overrides_config(tmp_path: Path, input_file: Path):
    with pytest.raises(SystemExit) as excinfo:
        main([str(input_file), "--max-days", "2", "--dry-run"])
    assert excinfo.value.code == 1


@pytest.mark.parametrize(
    "extra,message",
    [
        (["--config", "missing.json"], "config file not found"),
        (["--max-days", "0"], "--max-days"),
    ],
)
def test_main_rejects_bad_arguments(tmp_path: Path, input_file: Path, capsys, extra, message):
    with pytest.raises(SystemExit) as excinfo:
        main([str(input_file), *extra])
    assert excinfo.value.code == 2
    assert message in capsys.readouterr().err


def test_main_rejects_malformed_input(tmp_path: Path, capsys):
    path = tmp_path / "bad.txt"
    path.write_text("1 0\nAnna two\n")
    with pytest.raises(SystemExit) as excinfo:
        main([str(path)])
    assert excinfo.value.code == 2
    assert "invalid integer" in capsys.readouterr().err
