"""Mark rescaling against the maximum marks of the graded target."""

import logging

from grade_import.core.config import settings
from grade_import.schemas.grade_import import GradeRow

logger = logging.getLogger(__name__)

PERCENT_SCALE = 100


def resolve_target_max(
    explicit_max: float | None = None,
    remote_max: float | None = None,
    default: float | None = None,
) -> float:
    """Pick the target maximum: explicit context value, then the backend's, then the default."""
    for candidate in (explicit_max, remote_max):
        if candidate is not None and candidate > 0:
            return float(candidate)
    return float(default if default is not None else settings.DEFAULT_TARGET_MAX)


def rescale_mark(mark: float | None, target_max: float) -> float | None:
    """Rescale one mark.

    A mark of at most 1 is read as a fraction of ``target_max``. When the
    target is not out of 100, a mark of at most 100 is read as a percentage.
    Anything else is already on the target's scale. Marks between 1 and 100
    are ambiguous when ``target_max`` is 100 and are left as they are.
    """
    if mark is None:
        return None
    if mark <= 1:
        scaled = mark * target_max
    elif target_max != PERCENT_SCALE and mark <= PERCENT_SCALE:
        scaled = mark / PERCENT_SCALE * target_max
    else:
        scaled = mark
    return round(scaled, 2)


def rescale_rows(rows: list[GradeRow], target_max: float, scale_to_max: bool) -> list[GradeRow]:
    """Return rows with marks rescaled, or the rows unchanged when scaling is off."""
    if not scale_to_max:
        return list(rows)

    rescaled = [
        row.model_copy(update={"marks_obtained": rescale_mark(row.marks_obtained, target_max)})
        for row in rows
    ]
    logger.debug(f"[RESCALE] Rescaled {len(rescaled)} rows to target max {target_max}")
    return rescaled
