"""
Inference backends for nsfw_kit.

Kept apart from the pre/post-processing modules so those import without an
inference runtime installed.
"""

from __future__ import annotations

__all__ = []
