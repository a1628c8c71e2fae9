"""
Markdown run summary — rendered via Jinja2.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..audit.models import REPORT_HEADER

TEMPLATE_DIR = Path(__file__).parent / "templates"
TEMPLATE_NAME = "audit_summary.md.j2"


def md_cell(value: Any) -> str:
    """Make a value safe inside a Markdown table cell."""
    return str(value).replace("|", "\\|").replace("\n", " ")


def export_summary_markdown(
    summary: Any,
    output_dir: Path,
    run_id: str,
    sku_label: str = "",
) -> Path:
    """Render the run summary as Markdown and write it next to the other outputs."""
    output_dir.mkdir(parents=True, exist_ok=True)
    filepath = output_dir / f"license_audit_summary_{run_id}.md"

    with open(filepath, "w", encoding="utf-8") as fh:
        fh.write(render_summary_markdown(summary, run_id, sku_label))

    return filepath


def render_summary_markdown(summary: Any, run_id: str, sku_label: str = "") -> str:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape([]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["md_cell"] = md_cell
    template = env.get_template(TEMPLATE_NAME)
    return template.render(
        run_id=run_id,
        generated_utc=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
        summary=summary,
        policy=summary.policy,
        sku_label=sku_label or summary.policy.sku_id,
        header=REPORT_HEADER,
        rows=[m.to_row() for m in summary.matched],
    )
