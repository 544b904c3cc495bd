"""Final-state assertion synthesizer."""

from __future__ import annotations

from flowscribe.compiler.types import StatementBlock


def final_assertion() -> StatementBlock:
    """Liveness check closing every script: the page has some non-empty URL."""
    return StatementBlock(
        comments=["Verify test completed successfully"],
        assertions=['await expect(page).to_have_url(re.compile(r"."))'],
    )
