"""Validation schemas for record-store rows."""
