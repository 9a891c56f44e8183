"""Refresh-token rotation and session management for Flask APIs.

Exposes :func:`sessionguard.factory.create_app` at package level so callers
can ``from sessionguard import create_app``.
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
