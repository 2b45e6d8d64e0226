"""Command-line entry point for leappsifter."""
