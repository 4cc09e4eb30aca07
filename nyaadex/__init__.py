"""nyaadex - anime torrent discovery across Nyaa, Sukebei and SeaDex."""

__version__ = "0.1.0"
