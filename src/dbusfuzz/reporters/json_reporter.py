"""JSON reporter: write a fuzzing run summary as JSON."""

from __future__ import annotations

import json
from pathlib import Path

from dbusfuzz.core.schema import FuzzSummary, TrialOutcome


class JsonReporter:
    """Reporter that writes the per-method results of a run."""

    format_name: str = "json"

    def report_summary(self, summary: FuzzSummary, output: Path) -> None:
        """Write the summary, with per-outcome counts and exit code, to the output path."""
        output = Path(output).resolve()
        output.parent.mkdir(parents=True, exist_ok=True)
        data = summary.model_dump(mode="json")
        data["exit_code"] = summary.exit_code
        data["counts"] = {o.value: summary.count(o) for o in TrialOutcome if summary.count(o)}
        output.write_text(json.dumps(data, indent=2), encoding="utf-8")
