"""Record store access and file persistence."""
