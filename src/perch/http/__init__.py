"""HTTP types — immutable requests and responses."""
