"""core/ -- Configuration and time helpers. The kernel: imports nothing local."""
