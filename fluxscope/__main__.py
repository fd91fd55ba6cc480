"""Entry point for `python -m fluxscope`.

Usage:
    python -m fluxscope trace Deployment podinfo -n apps
    python -m fluxscope graph hr podinfo -n apps
"""

from __future__ import annotations

from fluxscope.cli import cli

cli()
