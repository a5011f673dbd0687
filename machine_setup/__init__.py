"""Developer workstation setup (macOS, Ubuntu, WSL, Raspberry Pi, Arch).

Core design goals:
- Idempotent steps, safe to re-run to update a machine
- One access resolver for the private dotfiles repository
- Platform differences as data (manifests/platforms/*.yaml)
- Failures of one tool never block unrelated setup
- Centralized logging
"""

__version__ = "0.1.0"

__all__ = []
