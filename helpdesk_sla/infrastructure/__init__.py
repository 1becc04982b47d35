"""
Infrastructure
==============

Database engine and session management.
"""
