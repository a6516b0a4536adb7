"""Write a scenario result to an output directory."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def write_output(result: dict[str, Any], directory: Path) -> dict[str, Path]:
    """Write ``estimate.json`` (and ``breakdown.txt`` when a delivery was projected).

    Returns a mapping of file name -> written path.
    """
    out = Path(directory)
    out.mkdir(parents=True, exist_ok=True)
    paths: dict[str, Path] = {}

    estimate_path = out / "estimate.json"
    with open(estimate_path, "w", encoding="utf-8") as f:
        json.dump(result, f, indent=2, ensure_ascii=False)
    paths["estimate.json"] = estimate_path

    delivery = result.get("delivery")
    if delivery and delivery.get("breakdown"):
        breakdown_path = out / "breakdown.txt"
        breakdown_path.write_text(delivery["breakdown"] + "\n", encoding="utf-8")
        paths["breakdown.txt"] = breakdown_path

    return paths
