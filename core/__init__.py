"""Core domain logic for outcome trend analysis.

This package contains the analysis engine and domain models,
isolated from external dependencies for easy testing and reasoning.
"""
