"""TARS — apply configuration profiles to AI coding assistant projects.

Plans the file changes a profile implies, applies them with a backup of
every touched file, and rolls them back byte-for-byte on request.
"""

__version__ = "0.1.0"
