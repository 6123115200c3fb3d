"""Batch execution engine — origins, commands, replay protection, approvals, and the executor.

Submodules are imported directly (``cgp.engine.executor``); the package
does not re-export them because the forwarders depend on
``cgp.engine.commands`` while ``cgp.engine.approvals`` depends on the
forwarders.
"""
