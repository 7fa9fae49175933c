"""CLI package for parkledger."""
