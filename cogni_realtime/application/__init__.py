"""Application layer for the realtime connection manager."""
