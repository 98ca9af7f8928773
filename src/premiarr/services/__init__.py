"""Business logic services for Premiarr."""
