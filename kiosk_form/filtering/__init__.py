"""Question filtering, ordering and statistics."""

from kiosk_form.filtering.filter import QuestionFilter
from kiosk_form.filtering.models import (
    FilteredQuestion,
    FilterOptions,
    QuestionStats,
    SortKey,
    SortOrder,
)

__all__ = [
    "QuestionFilter",
    "FilteredQuestion",
    "FilterOptions",
    "QuestionStats",
    "SortKey",
    "SortOrder",
]
