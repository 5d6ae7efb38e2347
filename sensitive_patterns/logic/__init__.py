# sensitive_patterns/logic/__init__.py

"""Pure detection logic: validators, regex induction, arbitration and redaction."""
