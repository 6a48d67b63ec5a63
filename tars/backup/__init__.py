"""Backup and restore — the undo side of every apply.

This package provides:
- Models: a backup and its two kinds of entry (new file / existing file)
- Creation: plan-scoped and full ``.claude`` snapshots, persisted as JSON
- Restore: byte-exact replay, integrity verification, archive loading
- Index: a file-based catalog of persisted backups
"""
