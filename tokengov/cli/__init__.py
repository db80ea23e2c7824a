"""tokengov command-line tools."""
