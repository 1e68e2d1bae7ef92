"""Estimate calculation engine: sections, work items, materials and pricing coefficients."""
