"""HTTP API for kielcleanup.

Exposes record normalization and unit-id prefix resolution. Image import
and workflow gating stay with the CLI `run` command, which owns the folders.
"""
