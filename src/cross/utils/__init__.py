"""Small helpers shared across git-cross modules."""
