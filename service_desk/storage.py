from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from service_scheduling.workload import is_open

logger = logging.getLogger(__name__)


def _json_dump(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=False)


def _json_load(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def snapshot_root(artifact_root: Path) -> Path:
    path = artifact_root / "snapshots"
    path.mkdir(parents=True, exist_ok=True)
    return path


def estimate_root(artifact_root: Path) -> Path:
    path = artifact_root / "estimates"
    path.mkdir(parents=True, exist_ok=True)
    return path


def report_root(artifact_root: Path) -> Path:
    path = artifact_root / "reports"
    path.mkdir(parents=True, exist_ok=True)
    return path


def _list_manifests(root: Path, limit: int) -> list[dict[str, Any]]:
    manifests: list[dict[str, Any]] = []
    for child in root.iterdir():
        if not child.is_dir():
            continue
        manifest_file = child / "manifest.json"
        if not manifest_file.exists():
            continue
        try:
            manifests.append(_json_load(manifest_file))
        except (OSError, json.JSONDecodeError):
            logger.warning("unreadable manifest %s", manifest_file)
            continue
    manifests.sort(key=lambda row: row.get("generated_at", ""), reverse=True)
    return manifests[:limit]


def _manifest_path(root: Path, artifact_id: str | None) -> Path:
    if artifact_id:
        return root / artifact_id / "manifest.json"
    return root / "latest.json"


def _backlog(orders: list[dict[str, Any]]) -> dict[str, Any]:
    open_rows = [o for o in orders if is_open(o.get("status"))]
    unassigned = [o for o in open_rows if not o.get("technician_id")]
    return {
        "open_orders": len(open_rows),
        "unassigned_orders": len(unassigned),
        "unassigned_hours": round(sum(float(o.get("estimated_hours") or 0.0) for o in unassigned), 2),
    }


def save_snapshot(artifact_root: Path, snapshot: dict[str, Any], raw_payload: dict[str, Any]) -> Path:
    root = snapshot_root(artifact_root)
    sid = snapshot["snapshot_id"]
    target = root / sid
    (target / "raw").mkdir(parents=True, exist_ok=True)

    _json_dump(target / "snapshot.json", snapshot)
    for key, value in raw_payload.items():
        _json_dump(target / "raw" / f"{key}.json", value)

    manifest = {
        "snapshot_id": sid,
        "generated_at": snapshot.get("generated_at"),
        "local_timezone": snapshot.get("local_timezone"),
        "counts": snapshot.get("metadata", {}).get("counts", {}),
        "backlog": _backlog(snapshot.get("orders", [])),
        "path": str(target.resolve()),
    }
    _json_dump(target / "manifest.json", manifest)
    _json_dump(root / "latest.json", manifest)
    return target


def list_snapshots(artifact_root: Path, limit: int = 20) -> list[dict[str, Any]]:
    return _list_manifests(snapshot_root(artifact_root), limit)


def load_snapshot(artifact_root: Path, snapshot_id: str | None = None) -> dict[str, Any]:
    root = snapshot_root(artifact_root)
    manifest_path = _manifest_path(root, snapshot_id)
    if not manifest_path.exists():
        raise FileNotFoundError("snapshot manifest not found")
    sid = _json_load(manifest_path)["snapshot_id"]
    path = root / sid / "snapshot.json"
    if not path.exists():
        raise FileNotFoundError(f"snapshot payload not found: {sid}")
    return _json_load(path)


def save_estimate(artifact_root: Path, estimate: dict[str, Any]) -> Path:
    root = estimate_root(artifact_root)
    eid = estimate["estimate_id"]
    target = root / eid
    target.mkdir(parents=True, exist_ok=True)
    _json_dump(target / "estimate.json", estimate)

    delivery = estimate.get("delivery") or {}
    manifest = {
        "estimate_id": eid,
        "snapshot_id": estimate.get("snapshot_id"),
        "generated_at": estimate.get("generated_at"),
        "status": estimate.get("status"),
        "primary_technician_id": estimate.get("primary_technician_id"),
        "delivery_at": delivery.get("delivery_at"),
        "effective_hours": delivery.get("effective_hours"),
        "path": str(target.resolve()),
    }
    _json_dump(target / "manifest.json", manifest)
    _json_dump(root / "latest.json", manifest)
    return target


def list_estimates(artifact_root: Path, limit: int = 20) -> list[dict[str, Any]]:
    return _list_manifests(estimate_root(artifact_root), limit)


def load_estimate(artifact_root: Path, estimate_id: str | None = None) -> dict[str, Any]:
    root = estimate_root(artifact_root)
    manifest_path = _manifest_path(root, estimate_id)
    if not manifest_path.exists():
        raise FileNotFoundError("estimate manifest not found")
    eid = _json_load(manifest_path)["estimate_id"]
    path = root / eid / "estimate.json"
    if not path.exists():
        raise FileNotFoundError(f"estimate payload not found: {eid}")
    return _json_load(path)
