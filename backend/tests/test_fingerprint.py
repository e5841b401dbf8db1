"""Tests for plan content fingerprints."""
from __future__ import annotations

from types import SimpleNamespace
from uuid import uuid4

from journalmate.services.fingerprint import activity_fingerprint, compute_content_hash


def test_hash_is_stable_for_identical_content() -> None:
    first = compute_content_hash("Trip", "Sunny", ["Pack bags", "Book flight"])
    second = compute_content_hash("Trip", "Sunny", ["Pack bags", "Book flight"])

    assert first == second
    assert len(first) == 64


def test_changing_a_task_title_changes_the_hash() -> None:
    base = compute_content_hash("Trip", "Sunny", ["Pack bags", "Book flight"])

    assert compute_content_hash("Trip", "Sunny", ["Pack bags", "Book flights"]) != base


def test_task_order_and_plan_fields_participate() -> None:
    base = compute_content_hash("Trip", "Sunny", ["A", "B"])

    assert compute_content_hash("Trip", "Sunny", ["B", "A"]) != base
    assert compute_content_hash("Trip!", "Sunny", ["A", "B"]) != base
    assert compute_content_hash("Trip", "Rainy", ["A", "B"]) != base


def test_missing_description_hashes_like_empty_description() -> None:
    assert compute_content_hash("Trip", None, ["A"]) == compute_content_hash("Trip", "", ["A"])


def test_task_boundaries_are_not_ambiguous() -> None:
    assert compute_content_hash("Trip", "", ["a,b"]) != compute_content_hash("Trip", "", ["a", "b"])


def test_activity_fingerprint_ignores_ids_and_progress() -> None:
    def _plan(completed: bool):
        activity = SimpleNamespace(id=uuid4(), title="Trip", description="Sunny")
        tasks = [
            SimpleNamespace(id=uuid4(), title="Pack bags", completed=completed),
            SimpleNamespace(id=uuid4(), title="Book flight", completed=False),
        ]
        return activity, tasks

    assert activity_fingerprint(*_plan(False)) == activity_fingerprint(*_plan(True))
