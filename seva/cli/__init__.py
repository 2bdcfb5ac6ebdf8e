"""Operator command-line tools for seva."""
