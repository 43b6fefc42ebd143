"""gtown: branch workflow automation for git."""
