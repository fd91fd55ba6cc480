"""Upstream discovery: which Flux source an object came from."""

from fluxscope.trace.models import SourceRef, TraceNode, TraceResult, TraceSpec, TraceStatus
from fluxscope.trace.tracer import OwnershipTracer, trace_object

__all__ = [
    "OwnershipTracer",
    "SourceRef",
    "TraceNode",
    "TraceResult",
    "TraceSpec",
    "TraceStatus",
    "trace_object",
]
