#!/usr/bin/env python3
"""Step through a prediction loop from the terminal.

Each step shows the primary candidates with a short preview of where each
one leads, plus the long tail folded into a single "(other)" entry.
Pick a number to commit that token, or press Enter to take the most
probable one.

Usage:
    # Offline, against the seeded mock source:
    python step_through.py --source mock "The cat"

    # Against an OpenAI-compatible server (vLLM, llama.cpp, ...):
    export LP_API_BASE_URL=http://localhost:8000/v1
    export LP_MODEL=meta-llama/Llama-3.1-8B
    python step_through.py "Once upon a time"

    # Greedy forecast of 10 tokens, no prompting:
    python step_through.py --forecast 10 "The weather today"
"""

from __future__ import annotations

import argparse
import logging
import sys

from logprob_pipeline import (
    BoundaryError,
    Context,
    LookaheadResult,
    PipelineConfig,
    PredictionOrchestrator,
)

logger = logging.getLogger("logprob_pipeline.step_through")


def _render(result: LookaheadResult) -> None:
    """Print one step's choices."""
    dist = result.distribution
    print(f"\n[{result.step}] {result.context.text}")
    previews = {la.candidate.key: la.preview for la in result.lookaheads}
    for idx, candidate in enumerate(dist.primary, start=1):
        preview = previews.get(candidate.key, "")
        suffix = f"  -> {preview}" if preview else ""
        print(f"  {idx:>2}. {candidate.text!r:<16} {candidate.probability:6.1%}{suffix}")
    if dist.long_tail:
        tail = ", ".join(repr(m.text) for m in dist.long_tail[:8])
        print(f"      long tail: {tail}")
    if dist.dropped_mass > 0:
        print(f"      dropped: {dist.dropped_mass:.2%}")


def _interactive(orchestrator: PredictionOrchestrator, context: Context, steps: int) -> Context:
    for _ in range(steps):
        try:
            result = orchestrator.advance_with_lookahead(context)
        except BoundaryError as exc:
            logger.error("Step %s failed: %s (press Enter to retry)", exc.step, exc)
            if input().strip().lower() == "q":
                break
            continue

        _render(result)
        primary = result.distribution.primary
        if not primary:
            print("  nothing to choose from; stopping")
            break

        answer = input("choose [1]: ").strip().lower()
        if answer == "q":
            break
        index = int(answer) - 1 if answer.isdigit() else 0
        if not 0 <= index < len(primary):
            print(f"  no choice {answer!r}")
            continue
        context = orchestrator.commit(context, result.distribution, primary[index])
    return context


def _forecast(orchestrator: PredictionOrchestrator, context: Context, steps: int) -> None:
    distributions = orchestrator.forecast(context, steps)
    for dist in distributions:
        top = dist.primary[0] if dist.primary else None
        if top is not None:
            print(f"{dist.provenance.prefix!r} -> {top.text!r} ({top.probability:.1%})")
    stats = orchestrator.step_logger.get_summary_stats()
    if stats:
        print(f"mean residual: {stats['mean_residual_mass']:.2%}")


def main() -> None:
    """Parse arguments and run the loop."""
    parser = argparse.ArgumentParser(
        description="Step through next-token distributions interactively",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("seed", nargs="?", default="", help="Text to start from")
    parser.add_argument(
        "--source",
        default=None,
        help="Logprob source name (default: LP_SOURCE_TYPE or openai_completions)",
    )
    parser.add_argument("--steps", type=int, default=20, help="Maximum steps (default: 20)")
    parser.add_argument(
        "--forecast",
        type=int,
        default=0,
        metavar="N",
        help="Print a greedy N-token forecast instead of prompting",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )

    overrides = {"source_type": args.source} if args.source else {}
    config = PipelineConfig(log_level="none", diagnostic_mode=True, **overrides)

    with PredictionOrchestrator(config=config) as orchestrator:
        context = Context(seed=args.seed)
        if args.forecast:
            _forecast(orchestrator, context, args.forecast)
            return
        try:
            context = _interactive(orchestrator, context, args.steps)
        except (KeyboardInterrupt, EOFError):
            print()
        print(f"\n{context.text}")


if __name__ == "__main__":
    sys.exit(main())
