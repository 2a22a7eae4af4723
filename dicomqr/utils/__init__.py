"""Console-facing helpers shared by the Click commands."""
