from __future__ import annotations

from typing import List

from ..core.config import get_settings

settings = get_settings()


class EmptyBatchError(ValueError):
    pass


class BatchTooLargeError(ValueError):
    pass


def parse_company_names(raw: str, max_batch: int | None = None) -> List[str]:
    """
    Split a comma-delimited submission into clean, unique company names.

    Order of first appearance is kept; duplicates are detected case-insensitively.
    """
    limit = max_batch or settings.MAX_BATCH_SIZE
    names: List[str] = []
    seen: set[str] = set()
    for part in (raw or "").split(","):
        name = " ".join(part.split())
        if not name:
            continue
        key = name.lower()
        if key in seen:
            continue
        seen.add(key)
        names.append(name)

    if not names:
        raise EmptyBatchError("No valid company names provided.")
    if len(names) > limit:
        raise BatchTooLargeError(
            f"Please limit your request to a maximum of {limit} companies to ensure processing stability."
        )
    return names
