"""CLI commands for parkledger."""
