"""Numeric, parameter-packing and profiling utilities."""
