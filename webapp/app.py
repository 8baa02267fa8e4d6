from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path
from typing import Dict, List

from flask import Flask, abort, jsonify, request, send_file

from staffing_sim import engine
from staffing_sim.engine import SimulationLimitError, SimulationObserver, SimulationResult
from staffing_sim.io_utils import format_submission, parse_input, write_submission
from staffing_sim.models import SimulationConfig


def _default_datasets_root() -> Path:
    return (Path(__file__).resolve().parent.parent / "datasets").resolve()


def _resolve_datasets_root() -> Path:
    env_value = os.getenv("DATASETS_ROOT")
    if env_value:
        return Path(env_value).expanduser().resolve()
    return _default_datasets_root()


def _validate_within_root(path: Path, root: Path) -> None:
    try:
        path.relative_to(root)
    except ValueError as exc:
        raise ValueError(f"Dataset must be inside {root}") from exc


def _resolve_dataset(raw_value: str, root: Path) -> Path:
    if not raw_value:
        raise ValueError("dataset is required")
    input_dir = (root / "input").resolve()
    candidate = (input_dir / raw_value).resolve()
    _validate_within_root(candidate, input_dir)
    if not candidate.is_file():
        raise ValueError(f"Dataset not found: {raw_value}")
    return candidate


def _list_datasets(root: Path) -> List[Dict[str, object]]:
    entries: List[Dict[str, object]] = []
    input_dir = root / "input"
    if not input_dir.is_dir():
        return entries
    for child in sorted(input_dir.iterdir()):
        if not child.is_file():
            continue
        output_file = root / "output" / child.name
        entries.append(
            {
                "name": child.name,
                "size": child.stat().st_size,
                "has_output": output_file.is_file(),
            }
        )
    return entries


def _result_to_dict(result: SimulationResult) -> Dict[str, object]:
    return {
        "completed": [
            {
                "name": item.name,
                "start_day": item.start_day,
                "end_day": item.end_day,
                "score": item.score,
                "awarded_score": item.awarded_score,
                "contributors": list(item.contributors),
            }
            for item in result.completed
        ],
        "skipped": result.skipped,
        "days_simulated": result.days_simulated,
        "total_score": result.total_score,
        "submission": format_submission(result.completed),
    }


def _run_text(text: str, config: SimulationConfig) -> SimulationResult:
    contributors, projects = parse_input(text)
    bounded = replace(config, max_days=engine.score_horizon(projects) + 2)
    return engine.simulate(contributors, projects, bounded, SimulationObserver())


def create_app() -> Flask:
    app = Flask(__name__)
    datasets_root = _resolve_datasets_root()
    app.config["DATASETS_ROOT"] = datasets_root
    app.config["SIMULATION_CONFIG"] = SimulationConfig(narrate=False)

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    @app.get("/datasets")
    def datasets():
        return jsonify({"datasets": _list_datasets(datasets_root)})

    @app.post("/simulate")
    def simulate():
        data = request.get_json(silent=True)
        if isinstance(data, dict):
            text = data.get("input")
        else:
            text = request.get_data(as_text=True)
        if not isinstance(text, str) or not text.strip():
            return jsonify({"error": "input text is required"}), 400
        try:
            result = _run_text(text, app.config["SIMULATION_CONFIG"])
        except (ValueError, SimulationLimitError) as exc:
            return jsonify({"error": str(exc)}), 400
        return jsonify(_result_to_dict(result))

    @app.post("/run")
    def run_dataset():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        dataset_value = data.get("dataset") or request.form.get("dataset")
        if dataset_value is None:
            return jsonify({"error": "dataset is required"}), 400
        try:
            dataset_path = _resolve_dataset(str(dataset_value), datasets_root)
            result = _run_text(dataset_path.read_text(encoding="utf-8"), app.config["SIMULATION_CONFIG"])
        except (ValueError, SimulationLimitError) as exc:
            return jsonify({"error": str(exc)}), 400
        output_path = write_submission(datasets_root / "output" / dataset_path.name, result.completed)
        payload = _result_to_dict(result)
        payload["output"] = output_path.relative_to(datasets_root).as_posix()
        return jsonify(payload)

    @app.get("/files/<path:file_path>")
    def serve_file(file_path: str):
        """Serve input and output files from the datasets directory"""
        try:
            file_full_path = (datasets_root / file_path).resolve()
            _validate_within_root(file_full_path, datasets_root)
        except ValueError:
            abort(404)
        if not file_full_path.is_file():
            abort(404)
        return send_file(file_full_path, mimetype="text/plain")

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
