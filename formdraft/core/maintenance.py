"""
Operator maintenance for persisted drafts: listing, inspection and explicit cleanup.
Malformed payloads are never repaired implicitly; purge_malformed() is the explicit path.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .config import get_schema_version
from .envelope import DraftEnvelope
from .medium import StorageMedium
from ..util.logging import logger


@dataclass
class MaintenanceReport:
    operation: str
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    keys_checked: int = 0
    issues_found: int = 0
    actions_taken: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def inspect_payload(raw: Optional[str]) -> Optional[str]:
    """Return a problem description for a stored payload, or None when it is usable."""
    if raw is None:
        return "missing"
    try:
        envelope = DraftEnvelope.model_validate(json.loads(raw))
    except (ValueError, TypeError, ValidationError) as e:
        return f"malformed: {str(e).splitlines()[0][:80]}"
    if envelope.version != get_schema_version():
        return f"version {envelope.version} != {get_schema_version()}"
    return None


def list_drafts(medium: StorageMedium) -> Dict[str, Dict[str, Any]]:
    """Map each stored key to its field mapping (empty for unusable payloads)."""
    drafts = {}
    for key in medium.keys():
        raw = medium.read(key)
        if inspect_payload(raw) is None:
            drafts[key] = DraftEnvelope.model_validate(json.loads(raw)).state.form_data
        else:
            drafts[key] = {}
    return drafts


def check_drafts(medium: StorageMedium) -> MaintenanceReport:
    """Report keys whose payload cannot be read back."""
    report = MaintenanceReport(operation="check")
    for key in medium.keys():
        report.keys_checked += 1
        problem = inspect_payload(medium.read(key))
        if problem:
            report.issues_found += 1
            report.errors.append(f"{key}: {problem}")
    report.completed_at = datetime.now()
    return report


def purge_malformed(medium: StorageMedium, dry_run: bool = False) -> MaintenanceReport:
    """Remove keys whose payload cannot be read back."""
    report = MaintenanceReport(operation="purge")
    for key in medium.keys():
        report.keys_checked += 1
        problem = inspect_payload(medium.read(key))
        if not problem:
            continue
        report.issues_found += 1
        if not dry_run:
            medium.remove(key)
        report.actions_taken.append(f"{'would remove' if dry_run else 'removed'} {key} ({problem})")

    report.completed_at = datetime.now()
    logger.log_operation("maintenance.purge", "dry_run" if dry_run else "success", {
        "keys_checked": report.keys_checked,
        "issues_found": report.issues_found
    })
    return report
