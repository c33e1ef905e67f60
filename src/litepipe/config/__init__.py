"""Configuration loading for litepipe."""

from .loader import load_stream_config

__all__ = ["load_stream_config"]
