"""git-sops: transparent sops encryption for git working trees."""

__version__ = "0.1.0"
