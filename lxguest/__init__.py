"""lxguest — guest-agent tooling installer for lx-branded zones."""

__version__ = "0.1.0"
