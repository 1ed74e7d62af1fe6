"""Distributions and sampling-based inference built on infer()."""
