"""Computation engines: order flow, depth, classification and REST data."""
