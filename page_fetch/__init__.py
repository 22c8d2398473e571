"""Capture the network traffic of pages rendered in headless Chromium."""

__version__ = "0.1.0"
