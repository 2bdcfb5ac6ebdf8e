"""Repository implementations for the seva domain."""
