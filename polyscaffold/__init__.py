"""Feature-driven scaffolding for pnpm workspaces with catalog-aware dependency management."""

__version__ = "0.1.0"
