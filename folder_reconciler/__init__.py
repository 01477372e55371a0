"""
Folder Reconciler - merge one folder tree into another, or mirror it one way.

Features:
- Queue-driven tree merge with per-extension conflict policies
- Collision-avoiding renames that collapse true duplicates
- One-way sync presets (mirror, append/drain, media-only)
- Directory similarity scores to gate automatic merges
- Dry-run mode that reports every intended change
- Structured per-file outcome reports
"""

__version__ = "1.0.0"
