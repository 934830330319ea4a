"""Rotating log file writer with time and size rotation, compression, cleanup and text helpers."""

__version__ = "0.1.0"

__all__ = ["cleanup", "config", "fileutil", "modes", "textutil", "writer"]