"""Grid document store contract, its backends, and row/column resolution."""
