"""
JSON exporter — Writes the run summary with counts and matched rows.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .. import __version__


def export_summary_json(
    summary: Any,
    output_dir: Path,
    run_id: str,
    extra: Optional[dict] = None,
) -> Path:
    """
    Write the audit summary to a JSON file.

    Returns:
        Path to the created JSON file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    payload = {
        "metadata": {
            "tool": "Workspace Inactive License Audit",
            "version": __version__,
            "run_id": run_id,
            "generated_utc": datetime.now(timezone.utc).isoformat(),
        },
        **summary.to_dict(),
    }
    if extra:
        payload["metadata"].update(extra)

    filepath = output_dir / f"license_audit_summary_{run_id}.json"
    with open(filepath, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, default=str, ensure_ascii=False)

    return filepath
