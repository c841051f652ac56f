"""Console and JSON output."""
