"""Acquisition boundary for logprob-pipeline.

Re-exports the ABC, the registry, request/response types, and the
built-in sources::

    from logprob_pipeline.sources import LogprobSource, LogprobSourceRegistry
    from logprob_pipeline.sources import OpenAICompletionsSource, MockLogprobSource
"""

from logprob_pipeline.sources.base import LogprobSource
from logprob_pipeline.sources.mock import MockLogprobSource
from logprob_pipeline.sources.openai_compat import OpenAICompletionsSource
from logprob_pipeline.sources.registry import LogprobSourceRegistry, register_logprob_source
from logprob_pipeline.sources.types import AcquisitionRequest, AcquisitionResult, RawCandidate

__all__ = [
    "AcquisitionRequest",
    "AcquisitionResult",
    "LogprobSource",
    "LogprobSourceRegistry",
    "MockLogprobSource",
    "OpenAICompletionsSource",
    "RawCandidate",
    "register_logprob_source",
]
