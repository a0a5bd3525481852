"""Paste a multi-file unified diff and apply it to a workspace."""

from .engine import PatchSummary, apply_all, apply_patch_text, parse_patch

__all__ = ["PatchSummary", "apply_all", "apply_patch_text", "parse_patch"]

__version__ = "0.1.0"
