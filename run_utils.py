from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any

_INPUT_SUFFIXES = (".txt", ".csv", ".tsv", ".html", ".htm")


def resolve_base_name(arg: str | None, default: str = "genetic-report") -> str:
    if not arg:
        return default
    base = Path(arg).name
    for suffix in _INPUT_SUFFIXES:
        if base.lower().endswith(suffix):
            base = base[: -len(suffix)]
            break
    return base or default


def run_root(base_name: str, run_date: str | None = None) -> Path:
    run_date = run_date or date.today().strftime("%Y%m%d")
    root = Path("runs") / run_date / base_name
    root.mkdir(parents=True, exist_ok=True)
    return root


def write_json(path: Path, payload: Any) -> None:
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def load_summary(root: Path) -> dict[str, Any]:
    summary_path = root / "summary.json"
    if not summary_path.exists():
        return {}
    return json.loads(summary_path.read_text(encoding="utf-8"))


def update_summary(root: Path, updates: dict[str, Any]) -> None:
    """Merge ``updates`` into the run folder's summary.json."""
    summary = load_summary(root)
    summary.update(updates)
    write_json(root / "summary.json", summary)
