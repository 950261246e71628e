"""Utility helpers for Commit History."""

from .exception_logger import ExceptionLogger

__all__ = ["ExceptionLogger"]
