"""Operator command-line tools (predicate registration, batch replay)."""
