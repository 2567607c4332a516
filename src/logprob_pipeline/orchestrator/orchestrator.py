"""Prediction loop orchestrator.

Drives the acquisition boundary one next-token slot at a time:

    advance:   context -> source -> compute_distribution -> StepResult
    lookahead: advance, then one bounded continuation per top-K primary
               candidate, fetched concurrently
    commit:    chosen candidate (residual resolves to a long-tail draw)
               -> context one token longer
    forecast:  advance + greedy commit, repeated on an internal copy

Contexts are immutable values threaded through every call; the
orchestrator itself only tracks which state its current step is in and
refuses to start a step while another is in flight.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import TYPE_CHECKING, Any

import numpy as np

from logprob_pipeline.config import PipelineConfig, config_hash, resolve_config
from logprob_pipeline.distribution.normalizer import observed_mass
from logprob_pipeline.distribution.types import Provenance
from logprob_pipeline.exceptions import (
    BoundaryError,
    InvalidInputError,
    PreviewError,
    SelectionError,
    StepInProgressError,
)
from logprob_pipeline.logging.logger import StepLogger
from logprob_pipeline.logging.types import StepRecord
from logprob_pipeline.orchestrator.preview import truncate_preview
from logprob_pipeline.orchestrator.state import StepState
from logprob_pipeline.orchestrator.types import LookaheadCandidate, LookaheadResult, StepResult
from logprob_pipeline.pipeline import compute_distribution
from logprob_pipeline.selection.selector import draw_from_long_tail
from logprob_pipeline.selection.strategies import GreedyStrategy
from logprob_pipeline.sources.registry import LogprobSourceRegistry
from logprob_pipeline.sources.types import AcquisitionRequest

if TYPE_CHECKING:
    from collections.abc import Mapping

    from logprob_pipeline.canonical.types import MergedCandidate
    from logprob_pipeline.orchestrator.context import Context
    from logprob_pipeline.partition.types import PartitionedDistribution
    from logprob_pipeline.selection.strategies import SelectionStrategy
    from logprob_pipeline.sources.base import LogprobSource
    from logprob_pipeline.sources.types import AcquisitionResult

logger = logging.getLogger("logprob_pipeline")

# Floor for the observed mass when every reported log-probability
# underflows exp(); the residual then carries essentially all the mass.
_MIN_OBSERVED_MASS = 1e-12


class PredictionOrchestrator:
    """Runs prediction steps against one logprob source.

    One orchestrator serves one session: at most one step is in flight at
    a time, and a second request while a step is awaiting its response or
    expanding previews fails with ``StepInProgressError``.

    Args:
        source: The acquisition boundary. Built from
            ``config.source_type`` when omitted; a source built here is
            closed by ``close()``.
        config: Default configuration. Loaded from the environment when
            omitted.
        step_logger: Diagnostic logger. Built from the config when omitted.
        rng: Generator for long-tail draws. Seeded from *seed* when omitted.
        seed: Seed for the default generator.
    """

    def __init__(
        self,
        source: LogprobSource | None = None,
        config: PipelineConfig | None = None,
        *,
        step_logger: StepLogger | None = None,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
    ) -> None:
        self._config = config if config is not None else PipelineConfig()
        self._owns_source = source is None
        self._source = source if source is not None else LogprobSourceRegistry.build(self._config)
        self._logger = step_logger if step_logger is not None else StepLogger(self._config)
        self._rng = rng if rng is not None else np.random.default_rng(seed)
        self._greedy = GreedyStrategy()

        self._executor = ThreadPoolExecutor(
            max_workers=self._config.lookahead_workers,
            thread_name_prefix="logprob-pipeline",
        )
        self._state = StepState.IDLE
        self._state_lock = threading.Lock()
        self._closed = False

        logger.info(
            "PredictionOrchestrator initialized: source=%s, max_alternatives=%d, "
            "residual_min_mass=%.3f, primary_share_threshold=%.3f",
            self._source.name,
            self._config.max_alternatives,
            self._config.residual_min_mass,
            self._config.primary_share_threshold,
        )

    # --- State handling ---

    @property
    def state(self) -> StepState:
        """Current state of the step lifecycle."""
        return self._state

    def _begin_step(self) -> None:
        """Move to AWAITING_RESPONSE or refuse if a step is in flight."""
        with self._state_lock:
            if self._closed:
                raise RuntimeError("PredictionOrchestrator is closed")
            if self._state.in_progress:
                raise StepInProgressError(
                    f"Cannot start a step while in state {self._state.value!r}"
                )
            self._state = StepState.AWAITING_RESPONSE

    def _set_state(self, state: StepState) -> None:
        with self._state_lock:
            self._state = state

    def _reject_commit_in_flight(self) -> None:
        """Raise StepInProgressError if a step is running. Caller holds the lock."""
        if self._state.in_progress:
            raise StepInProgressError(f"Cannot commit while in state {self._state.value!r}")

    # --- Boundary calls ---

    def _call_source(self, request: AcquisitionRequest, timeout_s: float) -> AcquisitionResult:
        """Run ``source.fetch`` on the pool, bounded by *timeout_s*.

        Raises:
            BoundaryError: On timeout or any boundary failure.
        """
        future = self._executor.submit(self._source.fetch, request)
        try:
            return future.result(timeout=timeout_s)
        except FuturesTimeoutError as exc:
            future.cancel()
            raise BoundaryError(f"Source call timed out after {timeout_s:.1f}s") from exc

    def _acquire(
        self, context: Context, config: PipelineConfig
    ) -> tuple[StepResult, AcquisitionResult, float]:
        """Fetch and process one next-token slot.

        Returns:
            Tuple of (step result, raw response, fetch time in ms).

        Raises:
            BoundaryError: With the step index and unchanged context attached.
        """
        step = len(context)
        prefix = context.text
        request = AcquisitionRequest(
            prefix=prefix,
            max_alternatives=config.max_alternatives,
            stop_after_tokens=1,
        )

        t_fetch = time.perf_counter_ns()
        try:
            response = self._call_source(request, config.step_timeout_s)
            fetch_ms = (time.perf_counter_ns() - t_fetch) / 1_000_000.0
            if not response.alternatives:
                raise BoundaryError("Source returned an empty candidate list")

            log_probs = [raw.log_probability for raw in response.alternatives]
            distribution = compute_distribution(
                response.alternatives,
                max(observed_mass(log_probs), _MIN_OBSERVED_MASS),
                residual_min_mass=config.residual_min_mass,
                primary_share_threshold=config.primary_share_threshold,
                provenance=Provenance(
                    prefix=prefix,
                    model=response.model or config.model,
                    timestamp_ns=response.timestamp_ns or time.time_ns(),
                ),
            )
        except Exception as exc:
            self._set_state(StepState.FAILED)
            logger.warning("Step %d failed: %s", step, exc)
            message = str(exc) if isinstance(exc, (BoundaryError, InvalidInputError)) else repr(exc)
            raise BoundaryError(message, step=step, context=context) from exc

        return StepResult(step=step, context=context, distribution=distribution), response, fetch_ms

    def _fetch_preview(self, request: AcquisitionRequest) -> str:
        """Worker body for one lookahead preview.

        Raises:
            PreviewError: If the boundary call fails for any reason.
        """
        try:
            return truncate_preview(self._source.fetch(request).text)
        except BoundaryError as exc:
            raise PreviewError(str(exc)) from exc
        except Exception as exc:
            raise PreviewError(repr(exc)) from exc

    def _expand(
        self,
        context: Context,
        distribution: PartitionedDistribution,
        config: PipelineConfig,
        deadline_s: float,
    ) -> tuple[LookaheadCandidate, ...]:
        """Fan out one preview per top-K primary candidate and collect them.

        Each preview fails independently: an error or timeout yields an
        empty preview for that candidate only.
        """
        targets = [m for m in distribution.primary if not m.is_residual][: config.top_k]
        futures: list[Future[str]] = []
        for candidate in targets:
            request = AcquisitionRequest(
                prefix=context.append(candidate.text).text,
                max_alternatives=1,
                stop_after_tokens=config.preview_length,
            )
            futures.append(self._executor.submit(self._fetch_preview, request))

        budget_s = max(0.0, min(config.preview_timeout_s, deadline_s - time.monotonic()))
        wait(futures, timeout=budget_s)

        lookaheads: list[LookaheadCandidate] = []
        for candidate, future in zip(targets, futures):
            if not future.done():
                future.cancel()
                logger.debug("Preview for %r timed out", candidate.text)
                lookaheads.append(
                    LookaheadCandidate(candidate=candidate, preview="", error="timed out")
                )
                continue
            try:
                preview = future.result()
            except PreviewError as exc:
                logger.debug("Preview for %r failed: %s", candidate.text, exc)
                lookaheads.append(
                    LookaheadCandidate(candidate=candidate, preview="", error=str(exc))
                )
            else:
                lookaheads.append(LookaheadCandidate(candidate=candidate, preview=preview))
        return tuple(lookaheads)

    # --- Public operations ---

    def advance(self, context: Context, options: Mapping[str, Any] | None = None) -> StepResult:
        """Compute the next-token distribution for *context*.

        Args:
            context: Current context; never modified.
            options: Per-call overrides (``residual_min_mass``,
                ``primary_share_threshold``, ``log_level``, ...).

        Returns:
            The step result. The orchestrator is left in READY.

        Raises:
            StepInProgressError: If another step is in flight.
            BoundaryError: If the source fails; carries the step index and
                the unchanged context. The orchestrator is left in FAILED.
            ConfigValidationError: If *options* are invalid.
        """
        config = resolve_config(self._config, options)
        self._begin_step()
        t_start = time.perf_counter_ns()
        timestamp_ns = time.time_ns()

        result, response, fetch_ms = self._acquire(context, config)
        self._set_state(StepState.READY)

        self._log(config, result, response, timestamp_ns, t_start, fetch_ms)
        return result

    def advance_with_lookahead(
        self,
        context: Context,
        preview_length: int | None = None,
        top_k: int | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> LookaheadResult:
        """Advance one step and preview where each top candidate leads.

        Args:
            context: Current context; never modified.
            preview_length: Tokens per preview. Defaults to the config value.
            top_k: Number of primary candidates to preview. Defaults to the
                config value.
            options: Per-call overrides.

        Returns:
            The distribution plus one LookaheadCandidate per previewed
            candidate. The orchestrator is left in READY.

        Raises:
            StepInProgressError: If another step is in flight.
            BoundaryError: If the step's own acquisition fails. Preview
                failures never raise.
        """
        merged_options: dict[str, Any] = dict(options or {})
        if preview_length is not None:
            merged_options["preview_length"] = preview_length
        if top_k is not None:
            merged_options["top_k"] = top_k
        config = resolve_config(self._config, merged_options)

        self._begin_step()
        t_start = time.perf_counter_ns()
        timestamp_ns = time.time_ns()
        deadline_s = time.monotonic() + config.step_timeout_s

        result, response, fetch_ms = self._acquire(context, config)

        self._set_state(StepState.EXPANDING)
        try:
            lookaheads = self._expand(context, result.distribution, config, deadline_s)
        except Exception:
            self._set_state(StepState.FAILED)
            raise
        self._set_state(StepState.READY)

        self._log(config, result, response, timestamp_ns, t_start, fetch_ms, lookaheads)
        return LookaheadResult(
            step=result.step,
            context=context,
            distribution=result.distribution,
            lookaheads=lookaheads,
        )

    def commit(
        self,
        context: Context,
        distribution: PartitionedDistribution,
        chosen: MergedCandidate | LookaheadCandidate,
    ) -> Context:
        """Commit a chosen candidate and return the extended context.

        Choosing the residual category draws a concrete long-tail member,
        weighted by each member's own probability.

        Args:
            context: Context the distribution was computed for.
            distribution: Distribution the candidate was chosen from.
            chosen: The selected candidate or lookahead entry.

        Returns:
            A new Context one token longer. The orchestrator returns to IDLE.

        Raises:
            StepInProgressError: If a step is in flight.
            SelectionError: If *chosen* is not part of *distribution*, or the
                residual was chosen and the long tail has nothing to draw.
        """
        if isinstance(chosen, LookaheadCandidate):
            chosen = chosen.candidate
        with self._state_lock:
            self._reject_commit_in_flight()
        if chosen not in distribution:
            raise SelectionError(f"Candidate {chosen.text!r} is not part of the distribution")

        if chosen.is_residual:
            chosen = draw_from_long_tail(distribution, self._rng)
            logger.debug("Residual category resolved to %r", chosen.text)

        new_context = context.append(chosen.text)
        with self._state_lock:
            # A step may have started since the first check.
            self._reject_commit_in_flight()
            self._state = StepState.IDLE
        return new_context

    def commit_with(
        self,
        context: Context,
        distribution: PartitionedDistribution,
        strategy: SelectionStrategy,
    ) -> Context:
        """Let a selection strategy pick, then commit its choice.

        Raises:
            SelectionError: If the strategy does not accept the distribution.
        """
        if not strategy.accepts(distribution):
            raise SelectionError(
                f"Strategy {strategy.name!r} cannot select from this distribution"
            )
        return self.commit(context, distribution, strategy.select_from(distribution))

    def forecast(
        self,
        context: Context,
        steps: int,
        options: Mapping[str, Any] | None = None,
    ) -> list[PartitionedDistribution]:
        """Greedily extend a copy of *context* for up to *steps* tokens.

        Each step commits the most probable non-residual candidate. The
        caller's context is never touched. The run stops early when a step
        has nothing committable.

        Args:
            context: Starting context.
            steps: Maximum number of steps.
            options: Per-call overrides applied to every step.

        Returns:
            One partitioned distribution per completed step, in order.

        Raises:
            InvalidInputError: If *steps* is negative.
            BoundaryError: If any step fails; carries the internal context
                at the failed step.
        """
        if steps < 0:
            raise InvalidInputError(f"steps must be non-negative, got {steps}")

        working = context
        distributions: list[PartitionedDistribution] = []
        for _ in range(steps):
            result = self.advance(working, options)
            distributions.append(result.distribution)
            if not self._greedy.accepts(result.distribution):
                logger.info("Forecast stopped at step %d: nothing committable", result.step)
                self._set_state(StepState.IDLE)
                break
            working = self.commit_with(working, result.distribution, self._greedy)
        return distributions

    # --- Logging ---

    def _log(
        self,
        config: PipelineConfig,
        result: StepResult,
        response: AcquisitionResult,
        timestamp_ns: int,
        t_start_ns: int,
        fetch_ms: float,
        lookaheads: tuple[LookaheadCandidate, ...] = (),
    ) -> None:
        distribution = result.distribution
        top = distribution.candidates[0] if distribution.candidates else None
        residual = distribution.residual
        record = StepRecord(
            timestamp_ns=timestamp_ns,
            fetch_ms=fetch_ms,
            total_ms=(time.perf_counter_ns() - t_start_ns) / 1_000_000.0,
            source_name=self._source.name,
            model=distribution.provenance.model,
            step=result.step,
            prefix_chars=len(distribution.provenance.prefix),
            num_alternatives=len(response.alternatives),
            observed_mass=observed_mass([raw.log_probability for raw in response.alternatives]),
            residual_mass=residual.probability if residual is not None else 0.0,
            dropped_mass=distribution.dropped_mass,
            num_primary=len(distribution.primary),
            num_long_tail=len(distribution.long_tail),
            top_text=top.text if top is not None else "",
            top_probability=top.probability if top is not None else 0.0,
            num_previews=len(lookaheads),
            preview_failures=sum(1 for la in lookaheads if la.error is not None),
            config_hash=config_hash(config),
        )
        self._logger.log_step(record, config)

    # --- Accessors & lifecycle ---

    @property
    def source(self) -> LogprobSource:
        """The acquisition boundary in use."""
        return self._source

    @property
    def default_config(self) -> PipelineConfig:
        """The default configuration."""
        return self._config

    @property
    def step_logger(self) -> StepLogger:
        """The diagnostic logger for this orchestrator."""
        return self._logger

    def close(self) -> None:
        """Shut down the worker pool and close a source built by this instance."""
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=False, cancel_futures=True)
        if self._owns_source:
            self._source.close()

    def __enter__(self) -> PredictionOrchestrator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
