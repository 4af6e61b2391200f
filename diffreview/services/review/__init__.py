"""Review service package."""

from diffreview.services.review.diff_parser import (
    Change,
    DiffParser,
    Hunk,
    HunkHeader,
    LineType,
    parse_diff,
)
from diffreview.services.review.reviewer import (
    CodeReviewer,
    CommentFilters,
    ReviewComment,
    ReviewMetadata,
    ReviewResult,
)

__all__ = [
    "DiffParser",
    "Change",
    "Hunk",
    "HunkHeader",
    "LineType",
    "parse_diff",
    "CodeReviewer",
    "CommentFilters",
    "ReviewComment",
    "ReviewMetadata",
    "ReviewResult",
]
