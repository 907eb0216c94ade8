"""Core building blocks: classification, retries, transport and pagination."""
