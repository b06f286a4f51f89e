"""Audit module - activity trail of data changes."""
