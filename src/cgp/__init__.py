"""Cross-chain gateway core — operator-authenticated command batches and call approvals."""

__version__ = "0.1.0"
