"""fluxscope: ownership tracing and resource graphs for Flux GitOps."""

__version__ = "0.3.0"
