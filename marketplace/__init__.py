"""Course marketplace domain."""
