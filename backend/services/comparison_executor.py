"""Drives the external scorer over a generated pair list."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from backend.core.errors import ScorerFailure
from backend.core.logging import LogEvent, get_logger
from backend.models.comparison import DocumentPair
from backend.models.documents import PairwiseResult
from backend.services.scheduler import CancellationToken, TaskScheduler
from backend.services.scorer_client import SimilarityScorer

logger = get_logger(__name__)

ResultCallback = Callable[[DocumentPair, PairwiseResult], None]


@dataclass
class ExecutionReport:
    """Outcome of one executor pass, results in pair-generation order."""

    results: List[PairwiseResult] = field(default_factory=list)
    scorer_calls: int = 0
    cancelled: bool = False


class ComparisonExecutor:
    """
    Scores each pair exactly once, in generation order.

    Dispatch stops at the first scorer failure. With the default
    ``preserve_partial_results=False`` the results collected so far are
    dropped and only the failure is reported; when enabled they travel on the
    raised ``ScorerFailure`` as ``partial_results``.
    """

    def __init__(
        self,
        scorer: SimilarityScorer,
        concurrency: int = 1,
        preserve_partial_results: bool = False,
    ):
        self.scorer = scorer
        self.scheduler = TaskScheduler(concurrency)
        self.preserve_partial_results = preserve_partial_results

    async def execute(
        self,
        pairs: Sequence[DocumentPair],
        cancel_token: Optional[CancellationToken] = None,
        on_result: Optional[ResultCallback] = None,
    ) -> ExecutionReport:
        ordered = sorted(pairs, key=lambda pair: pair.index)

        def make_task(pair: DocumentPair):
            async def task() -> PairwiseResult:
                try:
                    score = await self.scorer.score(pair.left.id, pair.right.id)
                except ScorerFailure as exc:
                    raise exc.for_pair(pair.index, pair.ids)
                except Exception as exc:
                    raise ScorerFailure(
                        str(exc) or type(exc).__name__,
                        document_ids=pair.ids,
                        pair_index=pair.index,
                        original_error=exc,
                    ) from exc
                result = PairwiseResult(doc1=pair.left, doc2=pair.right, result=score)
                logger.debug(
                    LogEvent.PAIR_SCORED,
                    pair_index=pair.index,
                    doc1=pair.left.id,
                    doc2=pair.right.id,
                    final_percent=score.final_percent,
                )
                if on_result is not None and not (cancel_token and cancel_token.cancelled):
                    on_result(pair, result)
                return result
            return task

        outcome = await self.scheduler.run([make_task(pair) for pair in ordered], cancel_token)
        results = outcome.ordered_results()

        if outcome.cancelled:
            # the owner is gone; nothing collected here may be applied
            return ExecutionReport(results=[], scorer_calls=outcome.dispatched, cancelled=True)

        if outcome.error is not None:
            error = outcome.error
            if not isinstance(error, ScorerFailure):
                # raised by on_result, not by the scorer
                raise error
            # only pairs before the failing index count as partial results
            partial = [outcome.results[i] for i in sorted(outcome.results) if i < outcome.failed_index]
            logger.error(
                LogEvent.PAIR_FAILED,
                pair_index=outcome.failed_index,
                scorer_calls=outcome.dispatched,
                collected=len(partial),
                preserve_partial_results=self.preserve_partial_results,
                error=str(error),
            )
            error.scorer_calls = outcome.dispatched
            if self.preserve_partial_results:
                error.partial_results = partial
            raise error

        return ExecutionReport(results=results, scorer_calls=outcome.dispatched)
