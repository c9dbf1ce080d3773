"""Core building blocks: configuration, contracts, exceptions, logging."""
