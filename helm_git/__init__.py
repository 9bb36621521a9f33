"""helm-git: a Helm downloader plugin serving charts straight from git refs."""

__version__ = "1.0.0"
