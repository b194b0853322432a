"""
=============================================================================
REQUEST HANDLERS
=============================================================================

    handlers/
    ├── static.py              # target → file → 200/403/404 response
    └── connection_handler.py  # one full exchange per connection

=============================================================================
"""

from .static import StaticFileHandler, FileMetadata, open_file
from .connection_handler import ConnectionHandler

__all__ = [
    "StaticFileHandler",
    "FileMetadata",
    "open_file",
    "ConnectionHandler",
]
