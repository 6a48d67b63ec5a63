"""Shared helpers: path safety, hashing, git inspection."""
