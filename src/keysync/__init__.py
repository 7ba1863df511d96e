"""keysync — reconcile git-declared access grants with local users and groups."""

__version__ = "0.1.0"
