"""Command-line interface and console logging for audio-session."""
