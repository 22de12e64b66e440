"""
Provenance Enforcer - task provenance tracking for AI coding-agent workflows.

This package records per-task review, decision and risk artifacts, aggregates
them into a schema-validated task summary, and gates CI on those artifacts.
"""

__version__ = "0.1.0"
