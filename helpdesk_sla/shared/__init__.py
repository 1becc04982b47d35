"""
Shared Kernel Module
====================

Generic infrastructure used by the SLA module: structured logging,
request middleware and exception handlers.

DO NOT add SLA business logic to the shared kernel.
"""
