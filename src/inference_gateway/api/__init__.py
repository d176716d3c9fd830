"""HTTP surface of the Inference Gateway."""
