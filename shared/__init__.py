"""AoH Toolkit shared code."""
