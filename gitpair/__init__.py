"""Paired remote and local repository provisioning.

This package provisions a GitHub repository together with its local
working copy, or tears both down again:
- GitHub REST client for user and repository lookups
- git clone executor with token credentials
- Reconciliation of local and remote state into create/clone/delete steps
- Typer command line surface (create, clone, delete, whoami)
"""

__version__ = "0.1.0"
