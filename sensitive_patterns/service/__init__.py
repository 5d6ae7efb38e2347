# sensitive_patterns/service/__init__.py

"""Service layer: settings and the detection pipeline."""
