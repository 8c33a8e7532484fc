# common/__init__.py
"""Shared configuration, diagnostics logging and error types."""
