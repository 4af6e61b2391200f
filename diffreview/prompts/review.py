"""Prompts for hunk review and change summaries."""

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from diffreview.services.review.diff_parser import Hunk

REVIEW_SYSTEM_PROMPT = (
    "You are an AI assistant that reviews code changes. "
    "Always respond with pure JSON only, no markdown formatting."
)

SUMMARY_SYSTEM_PROMPT = (
    "You are an AI assistant that summarizes incremental code changes in pull requests. "
    "Focus on what's new or modified since the last review."
)


def build_review_prompt(hunk: "Hunk") -> str:
    """Build the user prompt for reviewing a single hunk."""
    parts = [
        "Below data is in JSON format and was constructed from Git diff data "
        "consisting of GNU hunks for a particular file.",
        "The changes array contains objects with:",
        "- content: the line content",
        "- type: 'addition', 'deletion', or 'context'",
        "- lineNumber: the actual line number in the new file",
        "",
        json.dumps(hunk.to_dict()),
        "",
        "Review the code changes and provide review comments. For each comment:",
        "- Only comment on added or modified lines (type: 'addition')",
        "- Use the exact lineNumber provided in the changes array",
        "- If you have no concerns, return an empty comments array",
        "",
        "Output Format: Return ONLY a JSON object (no markdown, no code blocks) "
        "with this structure:",
        "{",
        '  "comments": [',
        "    {",
        '      "body": "Comment body here",',
        '      "line": <exact_line_number>',
        "    }",
        "  ]",
        "}",
    ]
    return "\n".join(parts)


def build_summary_prompt(diff_text: str) -> str:
    """Build the user prompt for an incremental change summary."""
    parts = [
        "Please review the following incremental changes in this pull request "
        "and provide a concise summary:",
        "- Focus on what has changed since the last review",
        "- Highlight any new additions or modifications",
        "- Note any resolved or new concerns",
        "- Keep the summary professional and constructive",
        "",
        "Changes:",
        diff_text,
    ]
    return "\n".join(parts)
