"""Artifact namer/writer: persists generated scripts under unique names."""

from __future__ import annotations

import datetime
import re
from pathlib import Path

import structlog

from flowscribe.compiler.errors import WriteError
from flowscribe.compiler.types import GeneratedScript

logger = structlog.get_logger(__name__)

DEFAULT_OUTPUT_DIR = "tests/generated"
DEFAULT_SUFFIX = ".spec.py"


def slugify(name: str) -> str:
    """Lower-case, collapse runs of non-alphanumerics to ``-``, trim."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "flow"


def timestamp_token(now: datetime.datetime) -> str:
    """
    ISO-8601 UTC instant with millisecond precision, made filesystem-safe.

    ``2025-07-20T00:32:11.469Z`` becomes ``2025-07-20T00-32-11-469Z``.
    Naive datetimes are taken to be UTC already.
    """
    if now.tzinfo is not None:
        now = now.astimezone(datetime.timezone.utc)
    instant = now.strftime("%Y-%m-%dT%H:%M:%S") + f".{now.microsecond // 1000:03d}Z"
    return instant.replace(":", "-").replace(".", "-")


def artifact_filename(flow_name: str, now: datetime.datetime, suffix: str = DEFAULT_SUFFIX) -> str:
    return f"{slugify(flow_name)}_{timestamp_token(now)}{suffix}"


class ArtifactWriter:
    """
    Writes generated scripts into a dedicated output directory.

    Directory layout::

        {output_dir}/
            {slug}_{YYYY-MM-DDTHH-MM-SS-mmmZ}.spec.py

    Names are unique to the millisecond for a single writer; two writes of
    the same flow within one millisecond overwrite each other.
    """

    def __init__(self, output_dir: str | None = None, suffix: str = DEFAULT_SUFFIX) -> None:
        self._dir = Path(output_dir or DEFAULT_OUTPUT_DIR)
        self._suffix = suffix

    @property
    def output_dir(self) -> Path:
        return self._dir

    def path_for(self, flow_name: str, now: datetime.datetime) -> Path:
        return self._dir / artifact_filename(flow_name, now, self._suffix)

    def write(
        self,
        script: GeneratedScript,
        flow_name: str,
        now: datetime.datetime | None = None,
    ) -> Path:
        """
        Persist ``script`` and return its path.

        Raises ``WriteError`` when the directory or file cannot be written.
        """
        now = now or datetime.datetime.now(datetime.timezone.utc)
        path = self.path_for(flow_name, now)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(script.source)
        except OSError as exc:
            raise WriteError(str(path), str(exc)) from exc

        logger.info("artifact_written", flow=flow_name, path=str(path), steps=script.step_count)
        return path
