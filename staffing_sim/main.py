from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from . import engine
from .engine import LoggingObserver, SimulationLimitError, SimulationObserver, SimulationResult
from .io_utils import ensure_directory, load_config, load_input, write_csv, write_submission
from .models import SimulationConfig


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Day-stepped staffing simulation (text in, submission and CSV reports out)."
    )
    parser.add_argument("input", help="Path to the contributor/project input file")
    parser.add_argument("--config", help="Path to configuration JSON file")
    parser.add_argument(
        "--outdir",
        default="output",
        help="Output directory; the submission keeps the input file name (default: ./output)",
    )
    parser.add_argument(
        "--max-days",
        type=int,
        help="Abort if the simulation runs past this many days (overrides config.max_days)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulate and print a summary without writing any files",
    )
    return parser.parse_args(argv)


def _resolve_io_paths(args: argparse.Namespace) -> Tuple[Path, Optional[Path], Path]:
    input_path = Path(args.input)
    if not input_path.is_file():
        raise ValueError(f"input file not found at {input_path}")
    config_path = Path(args.config) if args.config else None
    if config_path is not None and not config_path.is_file():
        raise ValueError(f"config file not found at {config_path}")
    if args.max_days is not None and args.max_days <= 0:
        raise ValueError("--max-days must be a positive integer")
    return input_path, config_path, Path(args.outdir)


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(message)s")


def _print_dry_run_summary(result: SimulationResult) -> None:
    if not result.completed:
        print("No projects completed.")
    else:
        print("Completed projects:")
        for item in result.completed:
            days_label = "day" if item.duration == 1 else "days"
            team = ", ".join(item.contributors) if item.contributors else "no roles"
            print(
                f"- {item.name}: day {item.start_day} → {item.end_day} "
                f"({item.duration} {days_label}), score {item.awarded_score}/{item.score}; {team}"
            )
    print(f"\nTotal score: {result.total_score} after {result.days_simulated} days")
    if result.skipped:
        print("\nUnfinished projects:")
        for item in result.skipped:
            print(f"- {item['name']}: {item['reason']}")
    else:
        print("\nUnfinished projects: none")


def _write_skipped_markdown(skipped: List[Dict[str, object]], outdir: Path) -> Path:
    path = outdir / "unfinished_projects.md"
    lines: List[str] = ["# Unfinished Projects", ""]
    if not skipped:
        lines.append("All projects were completed.")
    else:
        for item in skipped:
            lines.append(f"- **{item['name']}**")
            lines.append(f"  - Reason: {item['reason']}")
            detail = item.get("detail") if isinstance(item.get("detail"), dict) else {}
            total = detail.get("total_roles")
            if isinstance(total, int) and total:
                lines.append(f"  - Staffed: {detail.get('filled_roles', 0)}/{total} roles")
            open_roles = detail.get("open_roles")
            if isinstance(open_roles, list) and open_roles:
                lines.append(f"  - Open Roles: {', '.join(str(role) for role in open_roles)}")
            lines.append("")
    path.write_text("\n".join(lines).strip() + "\n")
    return path


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    try:
        input_path, config_path, outdir = _resolve_io_paths(args)
        cfg = load_config(config_path) if config_path else SimulationConfig()
        contributors, projects = load_input(input_path)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)
    if args.max_days is not None:
        cfg = replace(cfg, max_days=args.max_days)
    _configure_logging(cfg.logging_level)

    observer = LoggingObserver() if cfg.narrate else SimulationObserver()
    try:
        result = engine.simulate(contributors, projects, cfg, observer)
    except SimulationLimitError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    if args.dry_run:
        _print_dry_run_summary(result)
        return

    outdir_path = ensure_directory(outdir)
    submission_path = write_submission(outdir_path / input_path.name, result.completed)
    timeline_path = outdir_path / "project_timeline.csv"
    skills_path = outdir_path / "contributor_skills.csv"
    write_csv(engine.timeline_frame(result, cfg), timeline_path)
    write_csv(engine.skills_frame(contributors), skills_path)
    skipped_path = _write_skipped_markdown(result.skipped, outdir_path)
    print(f"Wrote {submission_path}")
    print(f"Wrote {timeline_path}")
    print(f"Wrote {skills_path}")
    print(f"Wrote {skipped_path}")
    print(f"Total score: {result.total_score}")


if __name__ == "__main__":
    main()
