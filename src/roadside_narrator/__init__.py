"""Location-driven story seeds, lazy narration and a similarity-aware content cache."""
