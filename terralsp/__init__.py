"""In-memory document storage, LSP position mapping and request context for a Terraform language server."""

__version__ = "0.1.0"