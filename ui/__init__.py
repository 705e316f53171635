"""Console dashboard and log helpers."""
