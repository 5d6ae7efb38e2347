# sensitive_patterns/engine/__init__.py

"""Engine package providing the candidate matchers and their collaborators.

This package contains the structural, context-aware and field-aware
matchers, the external entity boundary with its Presidio implementation,
and the exclusion store.
"""
