"""Orchestration layer: selection -> pairs -> scorer -> results -> graph."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional
from uuid import uuid4

from backend.core.config import Settings
from backend.core.errors import (
    ComparisonInProgressError,
    ResourceNotFoundError,
    RunCancelledError,
    ScorerFailure,
    ValidationError,
)
from backend.core.logging import LogEvent, get_logger
from backend.models.comparison import ComparisonMode, DocumentPair, Selection
from backend.models.documents import PairwiseResult, SimilarDocument
from backend.models.graph import SimilarityGraph
from backend.services.base_service import BaseService
from backend.services.comparison_executor import ComparisonExecutor
from backend.services.document_directory import DocumentListing, take_snapshot
from backend.services.graph_view import GraphExplorer, neighbors, to_graph
from backend.services.pair_generator import generate_pairs
from backend.services.progress_tracker import ProgressTracker, ProgressType
from backend.services.scheduler import CancellationToken
from backend.services.scorer_client import SimilarityScorer

logger = get_logger(__name__)


@dataclass
class ComparisonRun:
    run_id: str
    mode: ComparisonMode
    pairs: List[DocumentPair]
    results: List[PairwiseResult] = field(default_factory=list)
    scorer_calls: int = 0
    progress_task_id: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None


class ComparisonOrchestrator(BaseService):
    """Facade the presentation layer talks to.

    Owns the current result list and the graph explorer. Only one run may be in
    flight at a time; a run that is cancelled (the UI went away) never touches
    the stored results.
    """

    def __init__(
        self,
        scorer: SimilarityScorer,
        listing: DocumentListing,
        settings: Optional[Settings] = None,
        progress_tracker: Optional[ProgressTracker] = None,
    ):
        super().__init__(settings)
        self.scorer = scorer
        self.listing = listing
        self.progress_tracker = progress_tracker or ProgressTracker()
        self.explorer = GraphExplorer(threshold=self.settings.default_similarity_threshold)
        self.latest_run: Optional[ComparisonRun] = None
        self._active_run_id: Optional[str] = None
        self._cancel_token: Optional[CancellationToken] = None
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._active_run_id is not None

    async def run(
        self,
        selection: Selection,
        *,
        preserve_partial_results: Optional[bool] = None,
    ) -> ComparisonRun:
        """Generate pairs for ``selection``, score them, and replace the stored results."""
        if self._lock.locked():
            logger.warning(LogEvent.COMPARISON_RUN_REJECTED, active_run_id=self._active_run_id)
            raise ComparisonInProgressError(self._active_run_id or "unknown")

        async with self._lock:
            run_id = str(uuid4())
            token = CancellationToken()
            self._active_run_id = run_id
            self._cancel_token = token
            try:
                return await self._run(run_id, token, selection, preserve_partial_results)
            finally:
                self._active_run_id = None
                self._cancel_token = None

    async def _run(
        self,
        run_id: str,
        token: CancellationToken,
        selection: Selection,
        preserve_partial_results: Optional[bool],
    ) -> ComparisonRun:
        log = logger.bind(run_id=run_id, mode=selection.mode)

        # a new invocation starts from an empty result list, whatever its outcome
        self.latest_run = None
        self.explorer.replace_results([])

        corpus = await take_snapshot(self.listing)
        try:
            pairs = generate_pairs(selection, corpus)
        except ValidationError as exc:
            log.warning(LogEvent.COMPARISON_RUN_FAILED, reason="validation", error=exc.message)
            raise

        preserve = self.settings.preserve_partial_results if preserve_partial_results is None else preserve_partial_results
        executor = ComparisonExecutor(
            self.scorer,
            concurrency=self.settings.comparison_concurrency,
            preserve_partial_results=preserve,
        )

        task_id = self.progress_tracker.create_task(
            ProgressType.COMPARISON_RUN,
            description=f"{selection.mode} comparison of {len(pairs)} pairs",
            total_steps=len(pairs),
            metadata={"run_id": run_id, "mode": selection.mode},
        )
        self.progress_tracker.start_task(task_id)
        run = ComparisonRun(run_id=run_id, mode=selection.comparison_mode, pairs=pairs, progress_task_id=task_id)

        log.info(
            LogEvent.COMPARISON_RUN_STARTED,
            pair_count=len(pairs),
            corpus_size=len(corpus),
            concurrency=self.settings.comparison_concurrency,
        )

        def on_result(pair: DocumentPair, _result: PairwiseResult) -> None:
            self.progress_tracker.advance(task_id, message=f"Scored {pair.left.filename} vs {pair.right.filename}")

        try:
            report = await executor.execute(pairs, cancel_token=token, on_result=on_result)
        except ScorerFailure as exc:
            if token.cancelled:
                self.progress_tracker.cancel_task(task_id)
                raise RunCancelledError(run_id) from exc
            self.progress_tracker.fail_task(task_id, exc.message)
            log.error(
                LogEvent.COMPARISON_RUN_FAILED,
                reason="scorer",
                pair_index=exc.pair_index,
                partial=len(exc.partial_results or []),
            )
            if exc.partial_results is not None:
                run.results = list(exc.partial_results)
                run.scorer_calls = exc.scorer_calls or 0
                run.completed_at = datetime.now(timezone.utc)
                self._apply(run)
            raise
        except asyncio.CancelledError:
            # the awaiting request went away; nothing collected is applied
            self.progress_tracker.cancel_task(task_id)
            log.info(LogEvent.COMPARISON_RUN_CANCELLED, reason="task_cancelled")
            raise
        except Exception as exc:
            self.progress_tracker.fail_task(task_id, str(exc) or type(exc).__name__)
            log.error(LogEvent.COMPARISON_RUN_FAILED, reason="unexpected", error=str(exc), exc_info=True)
            raise

        # re-check after the last await: a teardown may have landed while the final call was in flight
        if report.cancelled or token.cancelled:
            self.progress_tracker.cancel_task(task_id)
            log.info(LogEvent.COMPARISON_RUN_CANCELLED, scorer_calls=report.scorer_calls)
            raise RunCancelledError(run_id, discarded=report.scorer_calls)

        run.results = report.results
        run.scorer_calls = report.scorer_calls
        run.completed_at = datetime.now(timezone.utc)
        self._apply(run)
        self.progress_tracker.complete_task(task_id, message=f"Compared {len(report.results)} pairs")
        log.info(LogEvent.COMPARISON_RUN_COMPLETED, result_count=len(run.results), scorer_calls=report.scorer_calls)
        return run

    def _apply(self, run: ComparisonRun) -> None:
        self.latest_run = run
        self.explorer.replace_results(run.results)

    def cancel(self) -> bool:
        """Tear down the in-flight run, if any. Returns whether one was running."""
        if self._cancel_token is None:
            return False
        self._cancel_token.cancel()
        logger.info(LogEvent.COMPARISON_RUN_CANCELLED, run_id=self._active_run_id)
        return True

    @property
    def results(self) -> List[PairwiseResult]:
        return self.explorer.results

    def to_graph(self, threshold: Optional[float] = None) -> SimilarityGraph:
        if threshold is None:
            threshold = self.explorer.threshold
        return to_graph(self.results, threshold)

    def to_neighbors(self, node_id: str, threshold: Optional[float] = None) -> List[PairwiseResult]:
        if node_id not in self.explorer.full_graph.nodes:
            raise ResourceNotFoundError("Graph node", node_id)
        if threshold is None:
            threshold = self.explorer.threshold
        return neighbors(self.results, node_id, threshold)

    async def similar(self, document_id: str, top_k: int = 10) -> List[SimilarDocument]:
        lookup = getattr(self.scorer, "similar", None)
        if lookup is None:
            raise ValidationError("The configured scorer does not support similarity lookups")
        return await lookup(document_id, top_k)
