"""Durable per-user state: watched/notified marks and display preferences."""
