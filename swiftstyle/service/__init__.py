"""HTTP service mode for swiftstyle."""
