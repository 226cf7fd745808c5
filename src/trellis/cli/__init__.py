"""Command-line tooling for trellis declaration modules."""
