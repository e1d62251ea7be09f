"""reqtree core components."""
