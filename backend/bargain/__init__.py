"""Bargain simulator backend: negotiation engine, session API and round logging."""
