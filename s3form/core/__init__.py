"""Core building blocks of the s3form storage engine."""
