"""
medialib - a small SQLite-backed store for a personal media library.

Albums and their tracks live in two tables. A trigger keeps a default
"Unknown Album" around so there is always somewhere to file a track, and the
`media_with_album` view gives readers the album context without a join.
"""

__version__ = "0.1.0"
__author__ = "medialib Contributors"
__license__ = "GPL-2.0"

from medialib.core.library import MediaLibrary
from medialib.core.library_db import LibraryDb

__all__ = ["LibraryDb", "MediaLibrary", "__version__"]
