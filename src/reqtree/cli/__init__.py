"""reqtree command-line interface."""
