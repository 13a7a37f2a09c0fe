"""Azure resource schema types, schema index lookup and an in-memory document store for editor tooling."""

__version__ = "0.1.0"