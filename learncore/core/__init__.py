"""Shared building blocks: objective adapters, the iterative control loop, run traces."""
