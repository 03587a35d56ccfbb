"""Generation core for the course platform: repair pipeline, schema coercion, and safe content validation."""

__version__ = "0.1.0"
