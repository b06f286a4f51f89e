"""Balances module - daily balance projection and its cache."""
