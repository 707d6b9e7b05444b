"""Money and calendar primitives shared by every engine."""
