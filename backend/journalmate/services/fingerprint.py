"""Content fingerprints used to detect duplicate plan copies."""
from __future__ import annotations

import hashlib
import json
from typing import Iterable, Sequence


def compute_content_hash(title: str, description: str | None, task_titles: Sequence[str]) -> str:
    """Return a SHA-256 hex digest over the plan's semantic content.

    Only the title, description and ordered task titles participate, so two
    copies of the same plan hash identically regardless of ids, ownership or
    completion state.
    """
    canonical = json.dumps(
        {
            "title": title,
            "description": description or "",
            "tasks": list(task_titles),
        },
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def activity_fingerprint(activity, tasks: Iterable) -> str:
    return compute_content_hash(activity.title, activity.description, [task.title for task in tasks])
