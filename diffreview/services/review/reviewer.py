"""Review orchestration across every hunk of a diff."""

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog

from diffreview.core.exceptions import InvalidHunkError, InvalidInputError, ReviewError
from diffreview.core.metrics import record_hunk_review, record_review_completed
from diffreview.services.llm.coordinator import LLMCoordinator
from diffreview.services.review.diff_parser import DiffParser, Hunk, HunkHeader

logger = structlog.get_logger()

SUMMARY_FAILED_MESSAGE = "Summary generation failed"


@dataclass
class ReviewComment:
    """A model comment anchored to a line of a reviewed hunk."""

    body: str
    line: int
    filename: str
    hunk_header: HunkHeader | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "body": self.body,
            "line": self.line,
            "filename": self.filename,
            "hunkHeader": self.hunk_header.to_dict() if self.hunk_header else None,
        }


@dataclass
class ReviewMetadata:
    reviewed_at: datetime
    total_hunks: int = 0
    total_comments: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "reviewedAt": self.reviewed_at.isoformat(),
            "totalHunks": self.total_hunks,
            "totalComments": self.total_comments,
        }


@dataclass
class ReviewResult:
    """Result of reviewing a whole diff."""

    summary: str | None
    comments: list[ReviewComment] = field(default_factory=list)
    hunks: list[Hunk] = field(default_factory=list)
    metadata: ReviewMetadata = field(
        default_factory=lambda: ReviewMetadata(reviewed_at=datetime.now(UTC))
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "comments": [comment.to_dict() for comment in self.comments],
            "hunks": [hunk.to_dict() for hunk in self.hunks],
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class CommentFilters:
    """Criteria for filter_comments; a single string pattern counts as one pattern."""

    min_length: int | None = None
    exclude_files: str | Sequence[str] | None = None
    include_files: str | Sequence[str] | None = None


def _as_patterns(value: str | Sequence[str] | None) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


class CodeReviewer:
    """Orchestrates parsing, per-hunk LLM review and aggregation."""

    name = "AI Code Reviewer"

    def __init__(
        self,
        coordinator: LLMCoordinator | None = None,
        diff_parser: DiffParser | None = None,
    ) -> None:
        self.coordinator = coordinator or LLMCoordinator()
        self.diff_parser = diff_parser or DiffParser()

    async def review_changes(
        self,
        diff_text: str,
        generate_summary: bool = True,
    ) -> ReviewResult:
        """
        Review every hunk of a diff and collect the comments.

        Hunks are reviewed one at a time, in diff order. A hunk whose review
        fails contributes no comments; the rest of the diff is still reviewed.

        Args:
            diff_text: Raw unified diff.
            generate_summary: Whether to request an overall summary.

        Returns:
            ReviewResult with summary, enriched comments, hunks and metadata.

        Raises:
            InvalidInputError: If diff_text is not a non-empty string.
            ReviewError: If parsing or hunk validation fails.
        """
        if not isinstance(diff_text, str) or not diff_text:
            raise InvalidInputError("Valid diff data is required")

        start_time = time.perf_counter()
        reviewed_at = datetime.now(UTC)

        try:
            hunks = self.diff_parser.parse(diff_text)
            logger.info("Starting diff review", total_hunks=len(hunks))

            summary = None
            if generate_summary:
                summary = await self.generate_summary(diff_text)

            comments: list[ReviewComment] = []
            for hunk in hunks:
                comments.extend(await self.review_hunk(hunk))
        except Exception as e:
            logger.error("Review failed", error=str(e))
            record_review_completed(
                status="failed",
                duration_seconds=time.perf_counter() - start_time,
            )
            raise ReviewError(f"Review failed: {e}") from e

        record_review_completed(
            status="completed",
            duration_seconds=time.perf_counter() - start_time,
            comments_generated=len(comments),
        )
        logger.info(
            "Diff review finished",
            total_hunks=len(hunks),
            total_comments=len(comments),
        )

        return ReviewResult(
            summary=summary,
            comments=comments,
            hunks=hunks,
            metadata=ReviewMetadata(
                reviewed_at=reviewed_at,
                total_hunks=len(hunks),
                total_comments=len(comments),
            ),
        )

    async def review_hunk(self, hunk: Hunk) -> list[ReviewComment]:
        """Review one hunk; any LLM failure yields an empty list."""
        if (
            hunk is None
            or not getattr(hunk, "filename", None)
            or getattr(hunk, "changes", None) is None
        ):
            raise InvalidHunkError("Invalid hunk data")

        logger.debug(
            "Reviewing hunk",
            filename=hunk.filename,
            additions=hunk.additions,
            deletions=hunk.deletions,
        )

        try:
            response = await self.coordinator.get_review(hunk)
        except Exception as e:
            logger.error("Failed to review hunk", filename=hunk.filename, error=str(e))
            record_hunk_review("failed")
            return []

        raw_comments = response.get("comments") if isinstance(response, dict) else None
        if not isinstance(raw_comments, list):
            logger.warning("No valid comments in review response", filename=hunk.filename)
            record_hunk_review("malformed")
            return []

        comments = []
        for raw in raw_comments:
            try:
                comments.append(self._build_comment(raw, hunk))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(
                    "Skipping malformed comment",
                    filename=hunk.filename,
                    comment=raw,
                    error=str(e),
                )
                continue

        record_hunk_review("success")
        return comments

    @staticmethod
    def _build_comment(raw: Any, hunk: Hunk) -> ReviewComment:
        body = raw["body"]
        if not isinstance(body, str):
            raise TypeError("comment body must be a string")
        line = raw["line"]
        if not isinstance(line, int) or isinstance(line, bool):
            raise TypeError("comment line must be an integer")

        return ReviewComment(
            body=body,
            line=line,
            filename=hunk.filename,
            hunk_header=hunk.hunk_header,
        )

    async def generate_summary(self, diff_text: str) -> str:
        """Summarize the diff, degrading to a fixed message on failure."""
        try:
            return await self.coordinator.get_summary(diff_text)
        except Exception as e:
            logger.error("Failed to generate summary", error=str(e))
            return SUMMARY_FAILED_MESSAGE

    def filter_comments(
        self,
        comments: Sequence[ReviewComment],
        filters: CommentFilters | None = None,
    ) -> list[ReviewComment]:
        """Return the comments matching every given criterion; input is not modified."""
        filters = filters or CommentFilters()
        filtered = list(comments)

        if filters.min_length:
            min_length = filters.min_length
            filtered = [c for c in filtered if c.body and len(c.body) >= min_length]

        exclude_patterns = _as_patterns(filters.exclude_files)
        if exclude_patterns:
            filtered = [
                c for c in filtered if not any(p in c.filename for p in exclude_patterns)
            ]

        include_patterns = _as_patterns(filters.include_files)
        if include_patterns:
            filtered = [c for c in filtered if any(p in c.filename for p in include_patterns)]

        return filtered

    async def close(self) -> None:
        """Clean up resources."""
        await self.coordinator.close()
