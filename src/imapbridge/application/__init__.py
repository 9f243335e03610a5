"""Application layer - mailbox use cases and ports."""
