"""
Helpdesk SLA
============

SLA business-hours calculation and policy resolution service.
"""

__version__ = "1.0.0"
