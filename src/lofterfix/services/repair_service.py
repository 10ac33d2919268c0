import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Sequence

from loguru import logger

from lofterfix.db.gallery_storage import GalleryStorage
from lofterfix.errors import EngineInitError, ErrorKind, FailureKind, ReadError, RepairPipelineError, SaveError
from lofterfix.executors.box_geometry import box_to_region
from lofterfix.executors.detection_parser import parse_best_box
from lofterfix.executors.patch_repair import repair_region
from lofterfix.models.repair_models import BatchFailure, BatchResult, RepairOptions, RepairOutcome, RepairTask
from lofterfix.services.model_service import ModelService
from lofterfix.utils.images import read_image
from lofterfix.utils.visualization import draw_region

DEBUG_ALBUM = "debug"


class RepairService:
    """
    Runs batches of (target, reference) pairs through detection, geometry and
    patch repair, one task at a time.
    """

    def __init__(self, model_service: ModelService, storage: GalleryStorage, settings):
        self.model_service = model_service
        self.storage = storage
        self.settings = settings
        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="repair-worker")

    def submit_batch(self, tasks: Sequence[RepairTask], options: RepairOptions) -> "Future[BatchResult]":
        """Schedules a batch on the service's single worker thread."""
        return self._worker.submit(self.process_batch, list(tasks), options)

    def process_batch(self, tasks: Sequence[RepairTask], options: RepairOptions) -> BatchResult:
        batch_id = str(uuid.uuid4())
        ctx_logger = logger.bind(batch_id=batch_id)
        ctx_logger.info(
            f"► [Batch] Starting {len(tasks)} task(s), confidence={options.confidence}, padding={options.padding}"
        )

        result = BatchResult()
        start_time = time.time()
        for task in tasks:
            try:
                outcome = self.process_task(task, options)
            except EngineInitError as e:
                ctx_logger.error(f"✖ [Batch] Aborting, engine unavailable: {e}")
                result.failure = BatchFailure(kind=FailureKind.ERR, message=f"system error: {e}")
                return result
            result.outcomes.append(outcome)

        if tasks and result.count == 0:
            result.failure = BatchFailure(
                kind=FailureKind.NO_DETECTION,
                message="no watermark detected or saving failed:\n" + _diagnostics(result.outcomes),
            )
            ctx_logger.warning(f"  ! [Batch] Nothing repaired in {len(tasks)} task(s)")

        ctx_logger.info(
            f"✔ [Batch] Finished in {time.time() - start_time:.2f} sec., repaired {result.count}/{len(tasks)}"
        )
        return result

    def process_task(self, task: RepairTask, options: RepairOptions) -> RepairOutcome:
        """
        Repairs one pair. Every per-task error ends up in the returned outcome;
        only EngineInitError propagates.
        """
        ctx_logger = logger.bind(task=task.name)
        ctx_logger.info(f"► [Task] {task.target_path}")
        try:
            return self._run_task(task, options, ctx_logger)
        except EngineInitError:
            raise
        except RepairPipelineError as e:
            ctx_logger.warning(f"  ! [Task] {e.kind.value}: {e}")
            return RepairOutcome.failed(task, e.kind, _reason(e))
        except Exception as e:
            ctx_logger.exception(f"✖ [Task] Unexpected error: {e}")
            return RepairOutcome.failed(task, ErrorKind.UNEXPECTED, f"error: {e}")

    def _run_task(self, task: RepairTask, options: RepairOptions, ctx_logger) -> RepairOutcome:
        try:
            target = read_image(task.target_path)
        except ReadError:
            return RepairOutcome.failed(task, ErrorKind.READ_ERROR, "cannot read image")
        try:
            reference = read_image(task.reference_path)
        except ReadError:
            return RepairOutcome.failed(task, ErrorKind.READ_ERROR, "cannot read reference image")

        tensor = self.model_service.infer(target)
        box = parse_best_box(tensor, options.confidence)
        if box is None:
            return RepairOutcome.skipped(task, ErrorKind.LOW_CONFIDENCE, "confidence too low")

        height, width = target.shape[:2]
        region = box_to_region(box, self.model_service.input_size, width, height, options.padding)
        ctx_logger.info(f"  › [Task] Region {region} (confidence {box.confidence:.3f})")
        if region.is_empty:
            return RepairOutcome.skipped(task, ErrorKind.DEGENERATE_REGION, "empty region")

        patch = repair_region(target, reference, region)
        if not patch.changed:
            return RepairOutcome.skipped(task, ErrorKind.DEGENERATE_REGION, "empty region")

        album = self.settings.album_name
        path = self.storage.save(patch.image, f"{self.settings.output_prefix}{task.name}", album)
        if self.settings.debug_overlays:
            overlay = draw_region(target, region, box.confidence)
            try:
                self.storage.save(overlay, f"{self.settings.output_prefix}{task.name}", f"{album}/{DEBUG_ALBUM}")
            except SaveError as e:
                ctx_logger.warning(f"  ! [Task] Debug overlay not saved: {e}")
        return RepairOutcome.repaired(task, path)

    def shutdown(self) -> None:
        self._worker.shutdown(wait=True)


def _reason(error: RepairPipelineError) -> str:
    return str(error) or error.kind.value.lower()


def _diagnostics(outcomes: List[RepairOutcome]) -> str:
    return "\n".join(f"{o.task.name} -> {o.reason}" for o in outcomes if not o.is_repaired)
