"""gitai-tracker: attribute editor edits to humans or coding agents via git-ai checkpoints."""

__version__ = "0.3.0"
