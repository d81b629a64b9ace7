"""
Pytest fixtures and configuration for SEO Compliance Optimizer tests.
"""

import pytest

from seo_compliance_optimizer.error_handler import ErrorHandler, InMemoryLogSink, InMemoryRuleStore
from seo_compliance_optimizer.models import ContentRecord


@pytest.fixture
def keyword() -> str:
    """Focus keyword used across the suite."""
    return "content marketing"


@pytest.fixture
def sample_body() -> str:
    """A small article body with headings, prose and one image."""
    return (
        "<h2>Why Content Marketing Works</h2>\n"
        "<p>Content marketing helps small teams reach new readers. "
        "However, it takes a steady plan to see results. "
        "Most teams start with one blog post each week. "
        "Then, they share every post on social channels.</p>\n"
        '<img src="team.png" alt="Marketing team planning a content marketing calendar">\n'
        "<h2>Building a Simple Plan</h2>\n"
        "<p>First, pick three topics your customers ask about. "
        "Next, write short answers that solve real problems. "
        "Also, measure which posts bring visitors back. "
        "Finally, update older posts when facts change.</p>"
    )


@pytest.fixture
def sample_content(sample_body: str) -> ContentRecord:
    """A mostly well-formed content record."""
    return ContentRecord(
        title="Content Marketing: A Practical Plan for Small Teams",
        body=sample_body,
        meta_description=(
            "Learn how content marketing helps small teams grow. Build a simple weekly plan, "
            "pick useful topics and measure what brings readers back."
        ),
    )


@pytest.fixture
def empty_content() -> ContentRecord:
    """A record with every field missing."""
    return ContentRecord()


@pytest.fixture
def error_handler() -> ErrorHandler:
    """Error handler backed by in-memory stores."""
    return ErrorHandler(InMemoryRuleStore(), InMemoryLogSink(), session_id="test-session")


@pytest.fixture
def file_error_handler(tmp_path) -> ErrorHandler:
    """Error handler persisting to a temporary directory."""
    return ErrorHandler.from_directory(tmp_path, session_id="file-session")
