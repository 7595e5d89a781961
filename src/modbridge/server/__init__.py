"""HTTP control surface."""
