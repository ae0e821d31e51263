"""crossbuild: host-aware multi-target Rust build and packaging tooling."""

__version__ = "0.1.0"
