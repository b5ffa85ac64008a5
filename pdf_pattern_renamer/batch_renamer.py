"""Batch rename orchestrating pattern replay, naming and file renames."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from pdf_pattern_renamer.chunk_manager import ChunkManager
from pdf_pattern_renamer.exceptions import FileOperationError
from pdf_pattern_renamer.file_io import rename_file
from pdf_pattern_renamer.models import (
    BatchFailure,
    BatchSummary,
    NamedFile,
    Pattern,
    RenamePlan,
)
from pdf_pattern_renamer.naming import DEFAULT_SEPARATOR, synthesize, with_counter
from pdf_pattern_renamer.pattern_replay import PatternReplayer

logger = logging.getLogger(__name__)

MAX_PATTERNS = 3

_NOTHING_EXTRACTED = "no text extracted"
_UNCHANGED = "name unchanged"


def _partial_warnings(name: str, errors: Sequence[BatchFailure]) -> list[str]:
    return [f"{name}: partial extraction ({e.message})" for e in errors]


class BatchRenamer:
    """Preview and execute pattern-based renames over many files.

    Wires together ChunkManager, PatternReplayer and the name synthesizer.
    One bad document never aborts the batch: its extraction comes back empty
    and the error is itemized in the summary.
    """

    def __init__(
        self,
        replayer: PatternReplayer | None = None,
        renamer: Callable[[Path, Path], Path] = rename_file,
        chunk_size: int = 25,
    ) -> None:
        self.replayer = replayer or PatternReplayer()
        self.renamer = renamer
        self.chunk_size = chunk_size
        self.chunk_manager = ChunkManager()

    def plan(
        self,
        files: Sequence[NamedFile],
        patterns: Sequence[Pattern],
        separator: str = DEFAULT_SEPARATOR,
        literal_suffix: str | None = None,
        yield_control: Callable[[], None] | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> list[RenamePlan]:
        """Compute the new name of every file without touching the disk.

        Files are processed in chunks; *yield_control* runs between chunks
        and *should_cancel* is checked before each file.

        Raises:
            ValueError: If not between one and three patterns are given.
        """
        if not 1 <= len(patterns) <= MAX_PATTERNS:
            raise ValueError(
                f"Between 1 and {MAX_PATTERNS} patterns are required, got {len(patterns)}"
            )

        plans: list[RenamePlan] = []
        taken: set[Path] = set()
        for chunk in self.chunk_manager.iter_chunks(len(files), self.chunk_size):
            for named in files[chunk.start:chunk.end]:
                if should_cancel is not None and should_cancel():
                    logger.info("Planning cancelled after %d file(s)", len(plans))
                    return plans
                plan = self._plan_one(named, patterns, separator, literal_suffix, taken)
                plans.append(plan)
            if yield_control is not None and chunk.end < len(files):
                yield_control()
        return plans

    def _plan_one(
        self,
        named: NamedFile,
        patterns: Sequence[Pattern],
        separator: str,
        literal_suffix: str | None,
        taken: set[Path],
    ) -> RenamePlan:
        errors: list[BatchFailure] = []
        parts = [self.replayer.replay_safe(p, named, errors) for p in patterns]

        if not any(parts):
            return RenamePlan(
                file=named,
                new_name=None,
                parts=parts,
                skipped_reason=_NOTHING_EXTRACTED,
                errors=errors,
            )

        base = synthesize(parts, separator, literal_suffix)
        plan = RenamePlan(file=named, new_name=base, parts=parts, errors=errors)
        counter = 2
        while plan.target_path in taken and plan.target_path != named.path:
            plan.new_name = with_counter(base, counter, separator)
            counter += 1
        taken.add(plan.target_path)

        if plan.target_path == named.path:
            plan.skipped_reason = _UNCHANGED
        return plan

    def execute(
        self,
        plans: Sequence[RenamePlan],
        dry_run: bool = False,
        should_cancel: Callable[[], bool] | None = None,
    ) -> BatchSummary:
        """Commit planned renames and summarize the outcome.

        Only files counted as failed contribute to ``failures``. Extraction
        errors of files that still got a name are reported as warnings.
        """
        start_time = time.monotonic()
        succeeded = failed = skipped = 0
        failures: list[BatchFailure] = []
        warnings: list[str] = []

        for i, plan in enumerate(plans):
            if should_cancel is not None and should_cancel():
                aborted = len(plans) - i
                warnings.append(f"Batch aborted; {aborted} file(s) not processed")
                logger.warning("Batch aborted with %d file(s) remaining", aborted)
                break

            name = plan.file.name

            if plan.skipped_reason is not None:
                if plan.errors and plan.skipped_reason == _NOTHING_EXTRACTED:
                    failed += 1
                    failures.extend(plan.errors)
                else:
                    skipped += 1
                    warnings.append(f"{name}: skipped ({plan.skipped_reason})")
                    warnings.extend(_partial_warnings(name, plan.errors))
                continue

            if dry_run:
                succeeded += 1
                warnings.extend(_partial_warnings(name, plan.errors))
                continue

            try:
                new_path = self.renamer(plan.file.path, plan.target_path)
            except (FileOperationError, OSError) as exc:
                failed += 1
                failures.extend(plan.errors)
                failures.append(
                    BatchFailure(path=str(plan.file.path), stage="rename", message=str(exc))
                )
                logger.warning("Rename failed for %s: %s", name, exc)
                continue

            plan.file.path = Path(new_path)
            plan.file.name = plan.file.path.name
            plan.file.basename = plan.file.path.stem
            succeeded += 1
            warnings.extend(_partial_warnings(name, plan.errors))
        else:
            aborted = 0

        summary = BatchSummary(
            total=len(plans),
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
            aborted=aborted,
            failures=failures,
            warnings=warnings,
            processing_time_seconds=time.monotonic() - start_time,
        )

        logger.info(
            "Batch finished: %d succeeded, %d failed, %d skipped, %d aborted",
            succeeded,
            failed,
            skipped,
            aborted,
        )
        for failure in failures:
            logger.warning("  %s [%s]: %s", failure.path, failure.stage, failure.message)
        return summary

    def run(
        self,
        files: Sequence[NamedFile],
        patterns: Sequence[Pattern],
        separator: str = DEFAULT_SEPARATOR,
        literal_suffix: str | None = None,
        dry_run: bool = False,
        yield_control: Callable[[], None] | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> tuple[list[RenamePlan], BatchSummary]:
        """Plan and execute in one go; files never planned count as aborted."""
        plans = self.plan(
            files,
            patterns,
            separator,
            literal_suffix,
            yield_control=yield_control,
            should_cancel=should_cancel,
        )
        summary = self.execute(plans, dry_run=dry_run, should_cancel=should_cancel)
        unplanned = len(files) - len(plans)
        if unplanned:
            summary.total = len(files)
            summary.aborted += unplanned
            summary.warnings = [w for w in summary.warnings if not w.startswith("Batch aborted")]
            summary.warnings.append(
                f"Batch aborted; {summary.aborted} file(s) not processed"
            )
        return plans, summary
