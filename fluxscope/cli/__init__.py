"""fluxscope command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``fluxscope`` script).
"""

from fluxscope.cli.main import cli

__all__ = ["cli"]
