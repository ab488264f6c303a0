"""Utility functions for jqdata."""

from jqdata.utils.env import load_env_file_if_present

__all__ = ["load_env_file_if_present"]
