from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from kielcleanup.core.config import CleanupConfig
from kielcleanup.core.errors import CleanupError
from kielcleanup.core.images.matcher import FileSystem, MatchResult, match_images
from kielcleanup.core.images.prefix import resolve_image_prefix
from kielcleanup.core.normalization.normalizer import NormalizationReport, normalize_record
from kielcleanup.core.record.model import Record
from kielcleanup.core.record.xml_store import RecordStore
from kielcleanup.core.workflow.gating import StepStatusStore, disable_steps_if_found

from .context import RunContext
from .events import (
    ImagesMatchedEvent,
    RecordLoadedEvent,
    RecordNormalizedEvent,
    RecordSavedEvent,
    RunFailedEvent,
    StepsDisabledEvent,
)
from .hashing import short_hash

log = logging.getLogger("kielcleanup.pipeline")


@dataclass(frozen=True)
class RunOutcome:
    """Overall result of one cleanup run.

    There is no partial success: `success` is False whenever any stage
    failed, even if the record had already been saved.
    """

    success: bool
    context: RunContext
    record: Optional[Record] = None
    report: Optional[NormalizationReport] = None
    images: Optional[MatchResult] = None
    disabled_steps: Tuple[str, ...] = ()
    cause: Optional[str] = None


class CleanupPipeline:
    """
    Runs the archive cleanup for one record.

    Order: load -> normalize -> save -> resolve image prefix -> import
    images -> disable steps.

    Invariants:
    - The record is saved exactly once, before any image is copied
    - Failures after the save do not roll the record back
    - CleanupError from any stage ends the run with success=False
    """

    def __init__(
        self,
        config: CleanupConfig,
        record_store: RecordStore,
        step_store: Optional[StepStatusStore] = None,
        *,
        fs: Optional[FileSystem] = None,
        target_folder: Optional[str | Path] = None,
    ) -> None:
        if config is None:
            raise RuntimeError("CleanupConfig is mandatory")
        if record_store is None:
            raise RuntimeError("RecordStore is mandatory")

        self._config = config
        self._record_store = record_store
        self._step_store = step_store
        self._fs = fs
        self._target_folder = target_folder or config.target_folder

    def run(self, context: Optional[RunContext] = None) -> RunOutcome:
        context = context or RunContext()
        stage = "load"
        record: Optional[Record] = None
        report: Optional[NormalizationReport] = None
        images: Optional[MatchResult] = None
        disabled: Tuple[str, ...] = ()

        try:
            original = self._record_store.load()
            context.emit_event(
                RecordLoadedEvent(
                    record_id=original.record_id,
                    field_count=len(original.fields),
                    entity_count=len(original.entities),
                )
            )

            stage = "normalize"
            record, report = normalize_record(original, self._config)
            context.emit_event(
                RecordNormalizedEvent(
                    record_id=record.record_id,
                    before_hash=short_hash(original.snapshot()),
                    after_hash=short_hash(record.snapshot()),
                    report=report.to_dict(),
                )
            )

            stage = "save"
            self._record_store.save(record)
            context.emit_event(RecordSavedEvent(record_id=record.record_id))
            log.info("record %s normalized and saved", record.record_id)

            stage = "images"
            images = self._import_images(record, context)

            stage = "steps"
            disabled = self._disable_steps(images is not None and images.found)
            if disabled:
                context.emit_event(StepsDisabledEvent(steps=list(disabled)))
        except CleanupError as e:
            log.error("cleanup run %s failed during %s: %s", context.run_id, stage, e)
            context.emit_event(RunFailedEvent(stage=stage, cause=str(e)))
            return RunOutcome(
                success=False,
                context=context,
                record=record,
                report=report,
                images=images,
                disabled_steps=disabled,
                cause=f"{stage}: {e}",
            )

        log.info("cleanup run %s finished", context.run_id)
        return RunOutcome(
            success=True,
            context=context,
            record=record,
            report=report,
            images=images,
            disabled_steps=disabled,
        )

    def _import_images(self, record: Record, context: RunContext) -> Optional[MatchResult]:
        cfg = self._config
        if not cfg.unit_id_field:
            return None

        unit_id = (record.last_value(cfg.unit_id_field) or "").strip()
        if not unit_id:
            log.info("record %s has no %s; image import skipped", record.record_id, cfg.unit_id_field)
            return None

        prefix = resolve_image_prefix(unit_id)
        if prefix and (not cfg.import_folder or not self._target_folder):
            log.warning("image folders not configured; image import for %s skipped", prefix)
            prefix = ""

        result = match_images(prefix, cfg.import_folder or "", self._target_folder or "", fs=self._fs)
        context.emit_event(ImagesMatchedEvent(unit_id=unit_id, prefix=prefix, copied=list(result.copied)))
        return result

    def _disable_steps(self, images_found: bool) -> Tuple[str, ...]:
        if not images_found:
            return ()
        if self._step_store is None:
            if self._config.steps_to_skip:
                log.warning("no step status store; steps %s left unchanged", list(self._config.steps_to_skip))
            return ()
        return tuple(disable_steps_if_found(images_found, self._config.steps_to_skip, self._step_store))
