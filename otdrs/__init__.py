"""Read, convert and write OTDR SOR (Telcordia/Bellcore) files."""

__version__ = "1.0.0"