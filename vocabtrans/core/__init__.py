"""Batch engine: classification, resilience, batching and orchestration."""
