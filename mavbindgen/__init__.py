"""Read MAVLink XML dialect definitions and produce building blocks for Rust bindings."""

__version__ = "0.1.0"