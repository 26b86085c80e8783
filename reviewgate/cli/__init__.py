"""reviewgate command line interface."""
