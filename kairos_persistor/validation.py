"""Shape checks for payloads forwarded to the KairosDB REST interface."""

from __future__ import annotations

from numbers import Number
from typing import Any, Mapping


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def validate_data_points(data_points: Any) -> bool:
    """Return whether ``data_points`` is a valid add-data-points object.

    A valid object has a ``name``, a non-empty ``tags`` mapping and either a
    ``datapoints`` list or both a ``timestamp`` and a ``value``.
    """

    if not isinstance(data_points, Mapping):
        return False
    if not isinstance(data_points.get("name"), str):
        return False

    tags = data_points.get("tags")
    if not isinstance(tags, Mapping) or not tags:
        return False

    valid_single = _is_number(data_points.get("timestamp")) and _is_number(
        data_points.get("value")
    )
    if not isinstance(data_points.get("datapoints"), list) and not valid_single:
        return False
    return True


def validate_data_points_batch(batch: Any) -> bool:
    """Validate a list of metric objects as accepted by the add endpoint."""

    if not isinstance(batch, list) or not batch:
        return False
    return all(validate_data_points(item) for item in batch)
