"""Pytest configuration and fixtures."""

import json
import os
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# =============================================================================
# Environment Setup (must happen before package imports)
# =============================================================================

os.environ.setdefault("LLM_ENDPOINT", "https://api.openai.com/v1/chat/completions")
os.environ.setdefault("LLM_API_KEY", "test-api-key")
os.environ.pop("LLM_MODEL", None)
os.environ.pop("LLM_PROVIDER", None)

from diffreview.services.review.diff_parser import (  # noqa: E402
    Change,
    Hunk,
    HunkHeader,
    LineType,
)
from tests.fixtures.llm_responses import make_completion  # noqa: E402


# =============================================================================
# Diff Fixtures
# =============================================================================


@pytest.fixture
def sample_diff() -> str:
    """Sample single-hunk diff."""
    return """diff --git a/test.py b/test.py
index 123..456 100644
--- a/test.py
+++ b/test.py
@@ -1,2 +1,3 @@
 a = 1
+b = 2
 c = 3"""


@pytest.fixture
def sample_hunk() -> Hunk:
    """The single hunk of sample_diff."""
    return Hunk(
        filename="test.py",
        changes=(
            Change(content=" a = 1", type=LineType.CONTEXT, line_number=1),
            Change(content="+b = 2", type=LineType.ADDITION, line_number=2),
            Change(content=" c = 3", type=LineType.CONTEXT, line_number=3),
        ),
        hunk_header=HunkHeader(old_start=1, new_start=1),
    )


# =============================================================================
# LLM Fixtures
# =============================================================================


@pytest.fixture
def sample_review_payload() -> dict[str, Any]:
    """Review payload as returned by the model."""
    return {"comments": [{"body": "Consider adding type validation", "line": 2}]}


@pytest.fixture
def sample_llm_response(sample_review_payload: dict[str, Any]) -> dict[str, Any]:
    """Chat-completions body carrying the review payload."""
    return make_completion(json.dumps(sample_review_payload))


@pytest.fixture
def mock_coordinator() -> MagicMock:
    coordinator = MagicMock()
    coordinator.get_review = AsyncMock()
    coordinator.get_summary = AsyncMock()
    coordinator.close = AsyncMock()
    return coordinator
