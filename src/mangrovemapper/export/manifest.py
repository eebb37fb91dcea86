"""Manifest of submitted exports."""

from __future__ import annotations

import json
from datetime import timezone
from pathlib import Path
from typing import Dict

from mangrovemapper.core.models import ExportRecord, SubmissionManifest


def manifest_to_dict(manifest: SubmissionManifest) -> Dict[str, object]:
    created_at = manifest.created_at.replace(tzinfo=timezone.utc).isoformat()
    return {
        "version": manifest.version,
        "workflow": manifest.workflow,
        "created_at": created_at,
        "generation_params": manifest.generation_params,
        "exports": [_record_to_dict(record) for record in manifest.records],
    }


def write_manifest(manifest: SubmissionManifest, path: Path, *, indent: int = 2) -> None:
    payload = manifest_to_dict(manifest)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=indent, sort_keys=True, default=str), encoding="utf-8")


def _record_to_dict(record: ExportRecord) -> Dict[str, object]:
    payload = {
        "description": record.description,
        "destination": record.destination,
        "target": record.target,
        "task_id": record.task_id,
        "state": record.state,
        "submitted_at": record.submitted_at.replace(tzinfo=timezone.utc).isoformat(),
    }
    return {key: value for key, value in payload.items() if value is not None}
