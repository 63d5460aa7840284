"""Numerical optimization core for fitting layered models to data."""
