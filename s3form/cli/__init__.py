"""s3form command line interface."""
