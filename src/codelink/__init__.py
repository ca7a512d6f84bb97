"""CodeLink: live project-file context for chat interfaces."""

__version__ = "1.1.0"
