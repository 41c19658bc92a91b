"""Backends for hfcgen output generation (Stata HFC do-files)."""

from .stata_generator import HFCParameters, generate_do_file, save_do_file

__all__ = ["HFCParameters", "generate_do_file", "save_do_file"]
