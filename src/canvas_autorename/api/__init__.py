"""http api for canvas autorename."""
