"""Retention policy: which provenance-tagged snapshots to keep."""

from __future__ import annotations

from typing import NamedTuple

from snapcycle.models.images import ImageArtifact


class RetentionSet(NamedTuple):
    keep: list[ImageArtifact]
    delete: list[ImageArtifact]


def tagged(
    artifacts: list[ImageArtifact], label_key: str, label_value: str
) -> list[ImageArtifact]:
    """Return only artifacts carrying ``label_key=label_value``, newest first."""
    owned = [a for a in artifacts if a.has_label(label_key, label_value)]
    owned.sort(key=lambda a: a.created_at, reverse=True)
    return owned


def partition(
    artifacts: list[ImageArtifact],
    keep_count: int,
    label_key: str,
    label_value: str,
) -> RetentionSet:
    """Split the tagged artifacts into the newest *keep_count* and the rest.

    Untagged artifacts never appear in either set.
    """
    if keep_count < 0:
        raise ValueError(f"keep_count must be >= 0, got {keep_count}")
    owned = tagged(artifacts, label_key, label_value)
    return RetentionSet(keep=owned[:keep_count], delete=owned[keep_count:])
