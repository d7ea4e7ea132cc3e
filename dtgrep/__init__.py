from .about import version as __version__
