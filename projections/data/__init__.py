"""Data module - accounts, events, recurring rules and transaction history."""
