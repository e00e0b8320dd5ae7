"""aleph: adaptive drills for the Persian alphabet and first vocabulary."""
