"""On-chain protocol integrations."""
