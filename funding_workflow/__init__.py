"""Evaluation scoring engine and status workflow for project-funding programs."""

__version__ = "0.1.0"
