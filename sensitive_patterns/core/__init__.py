# sensitive_patterns/core/__init__.py

"""Core domain models and utilities used across the detection engine.

This package provides domain types, exceptions, and the vocabulary loader
shared by the rest of the package.
"""
